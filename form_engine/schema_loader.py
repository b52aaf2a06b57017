"""
Schema loader for the employment form.
Loads JSON/YAML form schema documents into validated FormSchema models.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

import yaml
from pydantic import ValidationError

from .exceptions import SchemaError
from .schema_models import (
    SUPPORTED_FIELD_TYPES,
    FieldConfig,
    FormSchema,
    SelectFieldConfig,
)

logger = logging.getLogger(__name__)

SCHEMAS_DIR = Path("schemas")
DEFAULT_SCHEMA_PATH = SCHEMAS_DIR / "employment_form.json"
CURRENCY_FIELD_NAME = "currency"


def load_schema(schema_path: Union[str, Path]) -> FormSchema:
    """
    Load a form schema from a YAML or JSON file.

    Args:
        schema_path: Path to the schema file

    Returns:
        Validated FormSchema

    Raises:
        SchemaError: If the file is missing, unreadable or invalid
    """
    full_path = Path(schema_path)

    if not full_path.exists():
        raise SchemaError(f"Schema file not found: {full_path}", source=str(full_path))

    try:
        with open(full_path, 'r', encoding='utf-8') as f:
            if full_path.suffix.lower() in ['.yaml', '.yml']:
                document = yaml.safe_load(f)
            elif full_path.suffix.lower() == '.json':
                document = json.load(f)
            else:
                raise SchemaError(
                    f"Unsupported schema file format: {full_path.suffix}",
                    source=str(full_path)
                )
    except yaml.YAMLError as e:
        raise SchemaError(f"YAML parsing error in {full_path}: {e}", source=str(full_path)) from e
    except json.JSONDecodeError as e:
        raise SchemaError(f"JSON parsing error in {full_path}: {e}", source=str(full_path)) from e
    except OSError as e:
        raise SchemaError(f"Error reading schema {full_path}: {e}", source=str(full_path)) from e

    schema = parse_schema(document, source=str(full_path))
    logger.info(f"Successfully loaded schema '{schema.id}' from {full_path}")
    return schema


def parse_schema(document: Any, source: Optional[str] = None) -> FormSchema:
    """
    Validate a schema document into a FormSchema.

    Fields with an unrecognised `type` are dropped with a warning so the
    rest of the form still loads.

    Args:
        document: Parsed JSON/YAML document
        source: Where the document came from, for error messages

    Returns:
        Validated FormSchema

    Raises:
        SchemaError: If the document is not a valid schema
    """
    if not isinstance(document, dict):
        raise SchemaError("Schema must be a dictionary", source=source)

    document = _drop_unknown_fields(document)

    try:
        schema = FormSchema.model_validate(document)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise SchemaError(f"Invalid schema structure: {problems}", source=source) from e

    _check_unique_names(schema, source)
    return schema


def _drop_unknown_fields(document: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of the document without fields of unsupported type."""
    sections = document.get('sections')
    if not isinstance(sections, list):
        return document

    cleaned_sections = []
    for section in sections:
        if not isinstance(section, dict) or not isinstance(section.get('groups'), list):
            cleaned_sections.append(section)
            continue

        cleaned_groups = []
        for group in section['groups']:
            if not isinstance(group, dict) or not isinstance(group.get('fields'), list):
                cleaned_groups.append(group)
                continue

            kept = []
            for field in group['fields']:
                field_type = field.get('type') if isinstance(field, dict) else None
                if field_type not in SUPPORTED_FIELD_TYPES:
                    name = field.get('name') if isinstance(field, dict) else field
                    logger.warning(
                        f"Skipping field '{name}' with unsupported type '{field_type}'. "
                        f"Supported types: {sorted(SUPPORTED_FIELD_TYPES)}"
                    )
                    continue
                kept.append(field)
            cleaned_groups.append({**group, 'fields': kept})

        cleaned_sections.append({**section, 'groups': cleaned_groups})

    return {**document, 'sections': cleaned_sections}


def _check_unique_names(schema: FormSchema, source: Optional[str]) -> None:
    seen = set()
    for field in iter_fields(schema):
        if field.name in seen:
            raise SchemaError(f"Duplicate field name '{field.name}'", source=source)
        seen.add(field.name)


def iter_fields(schema: FormSchema) -> Iterator[FieldConfig]:
    """Yield every field config in declaration order."""
    for section in schema.sections:
        for group in section.groups:
            yield from group.fields


def field_names(schema: FormSchema) -> List[str]:
    return [field.name for field in iter_fields(schema)]


def get_field(schema: FormSchema, name: str) -> Optional[FieldConfig]:
    """Find a field config by name."""
    for field in iter_fields(schema):
        if field.name == name:
            return field
    return None


def apply_default_currency(schema: FormSchema, currency_code: Optional[str]) -> FormSchema:
    """
    Return a copy of the schema with the currency field's default replaced.

    The runtime-computed currency wins over the schema literal; when no code
    is given the schema is returned unchanged.
    """
    if not currency_code:
        return schema

    sections = []
    for section in schema.sections:
        groups = []
        for group in section.groups:
            fields = [
                field.model_copy(update={'default_value': currency_code})
                if field.name == CURRENCY_FIELD_NAME and isinstance(field, SelectFieldConfig)
                else field
                for field in group.fields
            ]
            groups.append(group.model_copy(update={'fields': fields}))
        sections.append(section.model_copy(update={'groups': groups}))

    logger.debug(f"Injected default currency {currency_code} into schema '{schema.id}'")
    return schema.model_copy(update={'sections': sections})


def get_configured_schema(config: Dict[str, Any]) -> FormSchema:
    """
    Load the schema named in the configuration, falling back to the bundled one.

    Args:
        config: Application configuration

    Returns:
        FormSchema
    """
    configured = config.get('schema', {}).get('path') or str(DEFAULT_SCHEMA_PATH)

    try:
        return load_schema(configured)
    except SchemaError as e:
        if Path(configured) == DEFAULT_SCHEMA_PATH:
            raise
        logger.warning(f"Configured schema unusable ({e}), trying fallback: {DEFAULT_SCHEMA_PATH}")
        return load_schema(DEFAULT_SCHEMA_PATH)
