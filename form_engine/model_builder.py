"""
Record models for form validation.

Each form schema is validated through a Pydantic record model. The
employment form has a hand-written model carrying its exact rules and
messages; any other schema gets a model built from its field configs.
Rules spanning several fields live in a registry keyed by record model and
run only once every per-field check has passed.
"""

import logging
import math
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, Union

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field, create_model, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from .schema_loader import iter_fields
from .schema_models import (
    CurrencyFieldConfig,
    DateFieldConfig,
    FormSchema,
    NumberFieldConfig,
    SelectFieldConfig,
    TextareaFieldConfig,
    TextFieldConfig,
)

logger = logging.getLogger(__name__)

# Constants for validation
MIN_EMPLOYER_NAME_LENGTH = 1
MAX_EMPLOYER_NAME_LENGTH = 100
MIN_ANNUAL_INCOME = 1
MAX_ANNUAL_INCOME = 1_000_000_000
MAX_NOTES_LENGTH = 500

EMPLOYER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9\s\-.,&'()]+$")
CURRENCY_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")

ERROR_MESSAGES = {
    'employerName': {
        'required': "Please enter the employer's name",
        'too_long': f"Employer name must be less than {MAX_EMPLOYER_NAME_LENGTH} characters",
        'invalid': "Employer name contains invalid characters",
    },
    'currency': {
        'required': "Please select a currency",
        'invalid': "Invalid currency code",
    },
    'annualGrossIncome': {
        'required': "Please enter the annual gross income",
        'invalid': "Annual gross income must only be a number",
        'positive': "Annual gross income must be a positive number",
        'too_large': f"Annual gross income must be less than {MAX_ANNUAL_INCOME:,}",
    },
    'employmentStartDate': {
        'required': "Please enter the start date",
        'future': "Employment start date cannot be in the future",
    },
    'employmentEndDate': {
        'invalid': "Please enter a valid date",
        'before_start': "Employment end date must be after the start date",
    },
    'notes': {
        'too_long': f"Notes must be less than {MAX_NOTES_LENGTH} characters",
    },
}


def _fail(field: str, key: str) -> PydanticCustomError:
    return PydanticCustomError(f"{field}_{key}", ERROR_MESSAGES[field][key])


def to_date(value: Any) -> Optional[date]:
    """
    Normalize a picker value to a date.

    Accepts date, datetime and ISO date strings; empty values become None.

    Raises:
        ValueError: If the value cannot be read as a date
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date_parser.parse(value).date()
    raise ValueError(f"Unsupported date value: {value!r}")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    return math.isfinite(value)


class EmploymentRecord(BaseModel):
    """The employment record collected by the form."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
        validate_default=True,
    )

    employer_name: Optional[str] = None
    currency: Optional[str] = None
    annual_gross_income: Optional[Union[int, float]] = None
    employment_start_date: Optional[date] = None
    employment_end_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator('employer_name', mode='before')
    @classmethod
    def check_employer_name(cls, value: Any) -> str:
        if value is None:
            value = ''
        if not isinstance(value, str):
            raise _fail('employerName', 'invalid')
        value = value.strip()
        if len(value) < MIN_EMPLOYER_NAME_LENGTH:
            raise _fail('employerName', 'required')
        if len(value) > MAX_EMPLOYER_NAME_LENGTH:
            raise _fail('employerName', 'too_long')
        if not EMPLOYER_NAME_PATTERN.match(value):
            raise _fail('employerName', 'invalid')
        return value

    @field_validator('currency', mode='before')
    @classmethod
    def check_currency(cls, value: Any) -> str:
        if value is None or value == '':
            raise _fail('currency', 'required')
        if not isinstance(value, str) or not CURRENCY_CODE_PATTERN.match(value):
            raise _fail('currency', 'invalid')
        return value

    @field_validator('annual_gross_income', mode='before')
    @classmethod
    def check_annual_gross_income(cls, value: Any) -> Union[int, float]:
        if not _is_number(value):
            raise _fail('annualGrossIncome', 'invalid')
        if value <= 0:
            raise _fail('annualGrossIncome', 'positive')
        if value < MIN_ANNUAL_INCOME:
            raise _fail('annualGrossIncome', 'required')
        if value > MAX_ANNUAL_INCOME:
            raise _fail('annualGrossIncome', 'too_large')
        if isinstance(value, Decimal):
            return float(value)
        return value

    @field_validator('employment_start_date', mode='before')
    @classmethod
    def check_start_date(cls, value: Any) -> date:
        try:
            start = to_date(value)
        except (ValueError, OverflowError):
            raise _fail('employmentStartDate', 'required')
        if start is None:
            raise _fail('employmentStartDate', 'required')
        if start > date.today():
            raise _fail('employmentStartDate', 'future')
        return start

    @field_validator('employment_end_date', mode='before')
    @classmethod
    def check_end_date(cls, value: Any) -> Optional[date]:
        try:
            return to_date(value)
        except (ValueError, OverflowError):
            raise _fail('employmentEndDate', 'invalid')

    @field_validator('notes', mode='before')
    @classmethod
    def check_notes(cls, value: Any) -> Optional[str]:
        if value is None or value == '':
            return None
        if not isinstance(value, str):
            raise PydanticCustomError('notes_type', "Notes must be text")
        if len(value) > MAX_NOTES_LENGTH:
            raise _fail('notes', 'too_long')
        return value


# Cross-field rules

CrossFieldRule = Callable[[BaseModel], Optional[Tuple[str, str]]]

_CROSS_FIELD_RULES: Dict[Type[BaseModel], List[CrossFieldRule]] = {}


def cross_field_rule(model_class: Type[BaseModel]) -> Callable[[CrossFieldRule], CrossFieldRule]:
    """Register a rule that checks a whole record and reports on one field."""
    def decorator(rule: CrossFieldRule) -> CrossFieldRule:
        _CROSS_FIELD_RULES.setdefault(model_class, []).append(rule)
        return rule
    return decorator


def get_cross_field_rules(model_class: Type[BaseModel]) -> List[CrossFieldRule]:
    return list(_CROSS_FIELD_RULES.get(model_class, []))


@cross_field_rule(EmploymentRecord)
def end_date_after_start(record: EmploymentRecord) -> Optional[Tuple[str, str]]:
    """The end date, when present, must fall strictly after the start date."""
    if record.employment_end_date and record.employment_start_date:
        if record.employment_end_date <= record.employment_start_date:
            return 'employmentEndDate', ERROR_MESSAGES['employmentEndDate']['before_start']
    return None


# Record model registry

_RECORD_MODELS: Dict[str, Type[BaseModel]] = {
    'employment-form': EmploymentRecord,
}


def register_record_model(schema_id: str, model_class: Type[BaseModel]) -> None:
    """Use a hand-written record model for the schema with this id."""
    _RECORD_MODELS[schema_id] = model_class
    logger.debug(f"Registered record model {model_class.__name__} for schema '{schema_id}'")


def get_record_model(schema: FormSchema) -> Type[BaseModel]:
    """
    Get the record model for a schema.

    Returns the registered model when there is one, otherwise a model built
    from the schema's field configs.
    """
    registered = _RECORD_MODELS.get(schema.id)
    if registered is not None:
        return registered
    return create_model_from_schema(schema)


def create_model_from_schema(schema: FormSchema, model_name: Optional[str] = None) -> Type[BaseModel]:
    """
    Create a Pydantic model from a form schema's field configs.

    Args:
        schema: Form schema
        model_name: Name for the generated model class

    Returns:
        Pydantic model class
    """
    model_fields: Dict[str, Any] = {}
    validators: Dict[str, Any] = {}

    for config in iter_fields(schema):
        model_fields[config.name] = create_field_from_config(config)
        validators.update(create_validators_for_field(config))

    name = model_name or ''.join(part.title() for part in re.split(r'[-_\s]+', schema.id)) + 'Record'
    try:
        dynamic_model = create_model(
            name,
            __config__=ConfigDict(extra='ignore'),
            __validators__=validators,
            **model_fields,
        )
    except Exception as e:
        logger.error(f"Failed to create model '{name}': {e}")
        raise

    logger.info(f"Created dynamic model '{name}' with {len(model_fields)} fields")
    return dynamic_model


def create_field_from_config(config: Any) -> tuple:
    """
    Map a field config to a (type, FieldInfo) pair for create_model.

    Required fields get no default; optional ones default to None.
    """
    field_kwargs: Dict[str, Any] = {'description': config.label}
    if not config.required:
        field_kwargs['default'] = None

    if isinstance(config, TextFieldConfig):
        field_type: Any = str
        min_length = config.min_length
        if config.required:
            min_length = max(min_length or 0, 1)
        if min_length is not None:
            field_kwargs['min_length'] = min_length
        if config.max_length is not None:
            field_kwargs['max_length'] = config.max_length
        if config.pattern:
            field_kwargs['pattern'] = config.pattern

    elif isinstance(config, TextareaFieldConfig):
        field_type = str
        if config.required:
            field_kwargs['min_length'] = 1
        if config.max_length is not None:
            field_kwargs['max_length'] = config.max_length

    elif isinstance(config, (NumberFieldConfig, CurrencyFieldConfig)):
        field_type = float
        if config.min is not None:
            field_kwargs['ge'] = config.min
        if config.max is not None:
            field_kwargs['le'] = config.max

    elif isinstance(config, DateFieldConfig):
        field_type = date

    elif isinstance(config, SelectFieldConfig):
        field_type = List[str] if config.multiple else str

    else:
        logger.warning(f"Unknown field type '{getattr(config, 'type', None)}', defaulting to str")
        field_type = str

    if not config.required:
        field_type = Optional[field_type]

    return field_type, Field(**field_kwargs)


def create_validators_for_field(config: Any) -> Dict[str, Any]:
    """
    Create validators for constraints pydantic has no keyword for.

    Covers date ranges and future/past exclusion, select option membership,
    date normalization, and blank optional inputs.
    """
    validators: Dict[str, Any] = {}
    name = config.name

    if isinstance(config, DateFieldConfig):
        @field_validator(name, mode='before')
        @classmethod
        def normalize_date(cls, v):
            try:
                return to_date(v)
            except (ValueError, OverflowError):
                raise PydanticCustomError('date_invalid', "Please enter a valid date")

        @field_validator(name)
        @classmethod
        def check_date_range(cls, v):
            if v is None:
                return v
            today = date.today()
            if config.disable_future and v > today:
                raise PydanticCustomError('date_future', "Date cannot be in the future")
            if config.disable_past and v < today:
                raise PydanticCustomError('date_past', "Date cannot be in the past")
            if config.min_date and v < config.min_date:
                raise PydanticCustomError(
                    'date_min', "Date must be on or after {min_date}",
                    {'min_date': config.min_date.isoformat()}
                )
            if config.max_date and v > config.max_date:
                raise PydanticCustomError(
                    'date_max', "Date must be on or before {max_date}",
                    {'max_date': config.max_date.isoformat()}
                )
            return v

        validators[f'normalize_{name}_date'] = normalize_date
        validators[f'validate_{name}_range'] = check_date_range

    elif isinstance(config, SelectFieldConfig):
        choices = [option.value for option in config.options]

        @field_validator(name)
        @classmethod
        def check_choice(cls, v):
            values = v if isinstance(v, list) else [v]
            for item in values:
                if item is not None and item not in choices:
                    raise PydanticCustomError(
                        'select_choice', "Value must be one of: {choices}",
                        {'choices': ', '.join(choices)}
                    )
            return v

        validators[f'validate_{name}_choice'] = check_choice

    if not config.required:
        @field_validator(name, mode='before')
        @classmethod
        def blank_to_none(cls, v):
            return None if v == '' else v

        validators[f'blank_{name}_to_none'] = blank_to_none

    return validators
