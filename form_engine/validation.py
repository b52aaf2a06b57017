"""
Validation engine for schema-driven forms.

Validates form values through the schema's record model, collects the first
message per field, and applies cross-field rules once every field passes on
its own. Also decides when validation runs for a field, following the
schema's validation mode and re-validation mode.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Type

from pydantic import BaseModel, ValidationError

from .model_builder import get_cross_field_rules, get_record_model
from .schema_models import FormSchema, ReValidateMode, ValidationConfig, ValidationMode

logger = logging.getLogger(__name__)

GENERAL_ERROR_KEY = "general"


@dataclass
class ValidationResult:
    """
    Outcome of validating a form.

    Attributes:
        success: True when there are no errors
        errors: Message per field path
        record: The validated record model instance on success
    """
    success: bool
    errors: Dict[str, str] = field(default_factory=dict)
    record: Optional[BaseModel] = None

    def error_for(self, field_name: str) -> Optional[str]:
        return self.errors.get(field_name)


def _error_path(error: Dict[str, Any], record_model: Type[BaseModel]) -> str:
    """Dotted error location, naming fields by their form (alias) name."""
    loc = list(error.get('loc') or ())
    if loc and loc[0] in record_model.model_fields:
        # Defaults validated for missing keys are reported under the attribute name
        loc[0] = record_model.model_fields[loc[0]].alias or loc[0]
    return '.'.join(str(part) for part in loc) or GENERAL_ERROR_KEY


def validate_form(
    values: Mapping[str, Any],
    schema: Optional[FormSchema] = None,
    record_model: Optional[Type[BaseModel]] = None
) -> ValidationResult:
    """
    Validate form values.

    Args:
        values: Current form values keyed by field name
        schema: Schema used to pick the record model when none is given
        record_model: Record model to validate with

    Returns:
        ValidationResult with one message per failing field
    """
    if record_model is None:
        if schema is None:
            raise ValueError("Either schema or record_model is required")
        record_model = get_record_model(schema)

    errors: Dict[str, str] = {}

    try:
        record = record_model.model_validate(dict(values))
    except ValidationError as e:
        for error in e.errors():
            path = _error_path(error, record_model)
            # Keep the first failing check per field
            errors.setdefault(path, error.get('msg', 'Invalid value'))
        logger.debug(f"Field validation failed: {sorted(errors)}")
        return ValidationResult(success=False, errors=errors)

    for rule in get_cross_field_rules(record_model):
        outcome = rule(record)
        if outcome is not None:
            path, message = outcome
            errors.setdefault(path, message)

    if errors:
        logger.debug(f"Cross-field validation failed: {sorted(errors)}")
        return ValidationResult(success=False, errors=errors)

    return ValidationResult(success=True, record=record)


class ValidationTrigger:
    """
    Decides whether a form event should validate a field.

    Before the first submit, and while a field has not failed yet, the
    validation `mode` applies. Once the form was submitted or the field
    holds an error, `reValidateMode` applies instead.
    """

    CHANGE = "change"
    BLUR = "blur"
    SUBMIT = "submit"

    def __init__(self, config: Optional[ValidationConfig] = None):
        config = config or ValidationConfig()
        self.mode = config.mode
        self.re_validate_mode = config.re_validate_mode

    def should_validate(self, event: str, has_error: bool, is_submitted: bool) -> bool:
        if event == self.SUBMIT:
            return True

        if has_error or is_submitted:
            if self.re_validate_mode == ReValidateMode.ON_CHANGE:
                return event == self.CHANGE
            if self.re_validate_mode == ReValidateMode.ON_BLUR:
                return event == self.BLUR
            return False

        if self.mode == ValidationMode.ALL:
            return event in (self.CHANGE, self.BLUR)
        if self.mode == ValidationMode.ON_CHANGE:
            return event == self.CHANGE
        if self.mode == ValidationMode.ON_BLUR:
            return event == self.BLUR
        return False
