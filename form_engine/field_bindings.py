"""
Field bindings: one controlled-input contract for every field type.

A binding connects a field config to the shared form state. Whatever the
variant, it reads its value from the form, writes back only through
on_change(), exposes focus and blur hooks, and surfaces the field's error.
The variant decides how raw input is parsed and how the value is displayed.
"""

import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional, Type

from .currencies import format_currency
from .form_state import FormInstance
from .model_builder import to_date
from .schema_models import FieldConfig

logger = logging.getLogger(__name__)

NON_DIGITS = re.compile(r'\D')
DEFAULT_TEXTAREA_ROWS = 4


class FieldBinding:
    """Base binding: pass-through value, string display."""

    def __init__(self, config: FieldConfig, form: FormInstance):
        self.config = config
        self.form = form

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def field_type(self) -> str:
        return self.config.type

    @property
    def label(self) -> str:
        return f"{self.config.label} *" if self.config.required else self.config.label

    @property
    def accessible_label(self) -> str:
        return self.config.aria_label or self.config.label

    @property
    def value(self) -> Any:
        return self.form.get_value(self.name)

    @property
    def error(self) -> Optional[str]:
        return self.form.get_error(self.name)

    @property
    def focused(self) -> bool:
        return self.form.focused_field == self.name

    @property
    def editable(self) -> bool:
        return not (self.config.disabled or self.config.read_only)

    @property
    def display_value(self) -> str:
        value = self.value
        return '' if value is None else str(value)

    def parse(self, raw: Any) -> Any:
        return raw

    def on_change(self, raw: Any) -> None:
        """Parse raw widget input and write it to the form."""
        if not self.editable:
            logger.debug(f"Ignoring change to non-editable field '{self.name}'")
            return
        self.form.set_value(self.name, self.parse(raw))

    def on_focus(self) -> None:
        self.form.focus(self.name)

    def on_blur(self) -> None:
        self.form.blur(self.name)


class TextBinding(FieldBinding):

    def parse(self, raw: Any) -> str:
        return '' if raw is None else str(raw)

    def on_blur(self) -> None:
        if self.config.trim and isinstance(self.value, str) and self.value != self.value.strip():
            self.form.set_value(self.name, self.value.strip(), validate=False)
        super().on_blur()


class TextareaBinding(FieldBinding):

    @property
    def rows(self) -> int:
        return self.config.rows or DEFAULT_TEXTAREA_ROWS

    def parse(self, raw: Any) -> str:
        text = '' if raw is None else str(raw)
        if self.config.max_length is not None:
            text = text[:self.config.max_length]
        return text


class NumberBinding(FieldBinding):

    def parse(self, raw: Any) -> Optional[float]:
        if raw is None or isinstance(raw, bool):
            return None
        if isinstance(raw, (int, float)):
            return raw
        text = str(raw).strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            logger.debug(f"Unparseable number for '{self.name}': {raw!r}")
            return None


class CurrencyBinding(FieldBinding):
    """
    Monetary input with a display/model split.

    The model value is an integer. While focused the raw digits are shown;
    once blurred the value is formatted with the selected currency.
    """

    def parse(self, raw: Any) -> int:
        digits = NON_DIGITS.sub('', '' if raw is None else str(raw))
        return int(digits) if digits else 0

    @property
    def raw_display(self) -> str:
        return str(self.value) if self.value else ''

    @property
    def formatted_display(self) -> str:
        return format_currency(self.value, self.form.selected_currency) if self.value else ''

    @property
    def display_value(self) -> str:
        return self.raw_display if self.focused else self.formatted_display


class DateBinding(FieldBinding):
    """
    Date input storing a normalized datetime.date.

    Out-of-range days are not selectable: min/max dates and the
    future/past flags narrow the picker, and on_change refuses days
    outside the range.
    """

    def parse(self, raw: Any) -> Optional[date]:
        try:
            return to_date(raw)
        except (ValueError, OverflowError) as e:
            logger.warning(f"Could not read date for '{self.name}': {e}")
            return None

    @property
    def min_selectable(self) -> Optional[date]:
        bounds = [d for d in (self.config.min_date,) if d]
        if self.config.disable_past:
            bounds.append(self.form.today())
        return max(bounds) if bounds else None

    @property
    def max_selectable(self) -> Optional[date]:
        bounds = [d for d in (self.config.max_date,) if d]
        if self.config.disable_future:
            bounds.append(self.form.today())
        return min(bounds) if bounds else None

    def is_selectable(self, day: date) -> bool:
        low, high = self.min_selectable, self.max_selectable
        if low and day < low:
            return False
        if high and day > high:
            return False
        return True

    def on_change(self, raw: Any) -> None:
        day = self.parse(raw)
        if day is not None and not self.is_selectable(day):
            logger.warning(f"Rejected out-of-range date {day} for '{self.name}'")
            return
        if not self.editable:
            logger.debug(f"Ignoring change to non-editable field '{self.name}'")
            return
        self.form.set_value(self.name, day)

    @property
    def display_value(self) -> str:
        value = self.value
        return value.isoformat() if isinstance(value, date) else ''


class SelectBinding(FieldBinding):

    @property
    def options(self) -> List[str]:
        return [option.value for option in self.config.options]

    def option_label(self, value: str) -> str:
        for option in self.config.options:
            if option.value == value:
                return option.label
        return value

    def on_change(self, raw: Any) -> None:
        chosen = raw if isinstance(raw, list) else [raw]
        unknown = [v for v in chosen if v not in self.options]
        if unknown:
            logger.warning(f"Rejected unknown option(s) {unknown} for '{self.name}'")
            return
        super().on_change(raw)

    @property
    def display_value(self) -> str:
        value = self.value
        if isinstance(value, list):
            return ', '.join(self.option_label(v) for v in value)
        return self.option_label(value) if value else ''


FIELD_BINDINGS: Dict[str, Type[FieldBinding]] = {
    'text': TextBinding,
    'textarea': TextareaBinding,
    'number': NumberBinding,
    'currency': CurrencyBinding,
    'date': DateBinding,
    'select': SelectBinding,
}


def bind_field(config: Any, form: FormInstance) -> Optional[FieldBinding]:
    """
    Create the binding for a field config.

    Returns None, with a warning, for an unrecognised field type.
    """
    field_type = getattr(config, 'type', None)
    binding_class = FIELD_BINDINGS.get(field_type)
    if binding_class is None:
        logger.warning(f"Unknown field type: {field_type}")
        return None
    return binding_class(config, form)


def bind_fields(form: FormInstance) -> Dict[str, FieldBinding]:
    """Bindings for every renderable field of the form, keyed by name."""
    bindings = {}
    for config in form.fields:
        binding = bind_field(config, form)
        if binding is not None:
            bindings[config.name] = binding
    return bindings
