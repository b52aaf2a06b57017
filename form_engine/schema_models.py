"""
Form schema type definitions.

A form schema is a declarative, immutable description of a form: sections
of field groups, the fields themselves, and the action buttons. Fields form
a discriminated union over their `type` tag, so each variant's extra
attributes are only ever read under that variant's rules.

Schema documents use camelCase keys (`readOnly`, `defaultValue`,
`reValidateMode`); the models expose snake_case attributes.
"""

from datetime import date
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SUPPORTED_FIELD_TYPES = {'text', 'number', 'currency', 'date', 'textarea', 'select'}
SUPPORTED_ACTION_TYPES = {'submit', 'reset', 'button'}


class SchemaModel(BaseModel):
    """Base for schema models: frozen, camelCase aliases, unknown keys ignored."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra='ignore',
    )


class ValidationMode(str, Enum):
    """When to trigger validation."""
    ON_BLUR = "onBlur"
    ON_CHANGE = "onChange"
    ON_SUBMIT = "onSubmit"
    ALL = "all"


class ReValidateMode(str, Enum):
    """When to re-validate a field that has already failed."""
    ON_BLUR = "onBlur"
    ON_CHANGE = "onChange"
    ON_SUBMIT = "onSubmit"


class GridConfig(SchemaModel):
    """Responsive column spans (out of 12)."""
    xs: Optional[int] = None
    sm: Optional[int] = None
    md: Optional[int] = None
    lg: Optional[int] = None

    def span(self) -> int:
        """Widest declared span, falling back through smaller breakpoints."""
        return self.lg or self.md or self.sm or self.xs or 12


class BaseFieldConfig(SchemaModel):
    """Configuration shared by all field types."""
    name: str
    label: str
    required: bool = False
    placeholder: Optional[str] = None
    helper_text: Optional[str] = None
    disabled: bool = False
    read_only: bool = False
    auto_focus: bool = False
    aria_label: Optional[str] = None
    grid: Optional[GridConfig] = None


class TextFieldConfig(BaseFieldConfig):
    type: Literal['text']
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    trim: bool = False


class NumberFieldConfig(BaseFieldConfig):
    type: Literal['number']
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None


class CurrencyFieldConfig(BaseFieldConfig):
    type: Literal['currency']
    min: Optional[float] = None
    max: Optional[float] = None


class DateFieldConfig(BaseFieldConfig):
    type: Literal['date']
    min_date: Optional[date] = None
    max_date: Optional[date] = None
    disable_future: bool = False
    disable_past: bool = False


class TextareaFieldConfig(BaseFieldConfig):
    type: Literal['textarea']
    rows: Optional[int] = None
    min_rows: Optional[int] = None
    max_rows: Optional[int] = None
    max_length: Optional[int] = None


class SelectOption(SchemaModel):
    value: str
    label: str


class SelectFieldConfig(BaseFieldConfig):
    type: Literal['select']
    options: List[SelectOption]
    default_value: Optional[str] = None
    multiple: bool = False


FieldConfig = Annotated[
    Union[
        TextFieldConfig,
        NumberFieldConfig,
        CurrencyFieldConfig,
        DateFieldConfig,
        TextareaFieldConfig,
        SelectFieldConfig,
    ],
    Field(discriminator='type'),
]


class FieldGroup(SchemaModel):
    """Fields rendered together; direction and spacing are presentation only."""
    fields: List[FieldConfig]
    direction: Literal['row', 'column'] = 'row'
    spacing: Optional[int] = None


class FormSection(SchemaModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    groups: List[FieldGroup] = Field(default_factory=list)


class FormAction(SchemaModel):
    """
    Action button configuration.

    `type` is kept as a plain string so that an unrecognised action loads
    and is simply not rendered.
    """
    id: str
    label: str
    type: str
    variant: Optional[Literal['text', 'outlined', 'contained']] = None
    color: Optional[str] = None
    size: Optional[Literal['small', 'medium', 'large']] = None
    on_click: Optional[str] = None


class LayoutConfig(SchemaModel):
    max_width: Optional[Union[int, str]] = None
    padding: Optional[int] = None
    spacing: Optional[int] = None


class ValidationConfig(SchemaModel):
    mode: ValidationMode = ValidationMode.ON_SUBMIT
    re_validate_mode: ReValidateMode = ReValidateMode.ON_CHANGE


class FormSchema(SchemaModel):
    """Complete form schema configuration."""
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    sections: List[FormSection] = Field(default_factory=list)
    actions: List[FormAction] = Field(default_factory=list)
    layout: Optional[LayoutConfig] = None
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
