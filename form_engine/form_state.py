"""
Form state for a single active form instance.

A FormInstance owns the current values, the error map, the submission flags,
and the debounced total income computation. All writes go through
set_value(), so validation timing and the derived total see every change.
"""

import logging
import threading
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Set, Type

from pydantic import BaseModel

from .calculations import calculate_total_income
from .currencies import DEFAULT_CURRENCY, format_currency
from .debounce import DEFAULT_WAIT_SECONDS, Debouncer, TimerFactory
from .model_builder import get_record_model
from .schema_loader import apply_default_currency, iter_fields
from .schema_models import FieldConfig, FormSchema
from .validation import ValidationResult, ValidationTrigger, validate_form

logger = logging.getLogger(__name__)

CURRENCY_FIELD = 'currency'
INCOME_FIELD = 'annualGrossIncome'
START_DATE_FIELD = 'employmentStartDate'
END_DATE_FIELD = 'employmentEndDate'

# Fields the derived total income depends on
WATCHED_FIELDS = (CURRENCY_FIELD, INCOME_FIELD, START_DATE_FIELD, END_DATE_FIELD)


def default_value_for(config: FieldConfig) -> Any:
    """Initial value of a field when the form is mounted or reset."""
    field_type = config.type
    if field_type in ('text', 'textarea'):
        return ''
    if field_type in ('currency', 'number'):
        return 0
    if field_type == 'select':
        if config.multiple:
            return [config.default_value] if config.default_value else []
        return config.default_value or ''
    return None


class FormInstance:
    """
    State of one mounted form.

    Attributes:
        schema: Schema the form was mounted with (currency default applied)
        values: Current value per field name
        errors: Current error message per field name
        is_submitting: True while a submit is being processed
        is_submitted: True once a submit was attempted
        total_income: Last computed total income
        total_income_display: Formatted total income
        computation_count: Number of total income computations that landed
    """

    def __init__(
        self,
        schema: FormSchema,
        default_currency: Optional[str] = None,
        record_model: Optional[Type[BaseModel]] = None,
        debounce_seconds: float = DEFAULT_WAIT_SECONDS,
        timer_factory: Optional[TimerFactory] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.schema = apply_default_currency(schema, default_currency)
        self.record_model = record_model or get_record_model(self.schema)
        self.trigger = ValidationTrigger(self.schema.validation)
        self.clock = clock or datetime.now

        self._lock = threading.RLock()
        self._debouncer = Debouncer(self._recompute_total, debounce_seconds, timer_factory)
        self._disposed = False
        # Bumped by reset/dispose; a computation scheduled in an older epoch never lands
        self._epoch = 0

        self.values: Dict[str, Any] = {}
        self.errors: Dict[str, str] = {}
        self.touched: Set[str] = set()
        self.focused_field: Optional[str] = None
        self.is_submitting = False
        self.is_submitted = False
        self.total_income = Decimal("0")
        self.total_income_display = ''
        self.computation_count = 0

        self._seed_defaults()
        logger.info(f"Mounted form '{self.schema.id}' with {len(self.values)} fields")

    # Lifecycle

    def _seed_defaults(self) -> None:
        self.values = {config.name: default_value_for(config) for config in iter_fields(self.schema)}
        self.errors = {}
        self.touched = set()
        self.focused_field = None
        self.is_submitted = False
        self.is_submitting = False
        self.total_income = Decimal("0")
        self.total_income_display = format_currency(0, self.selected_currency)

    def reset(self) -> None:
        """Discard edits and errors and return to the schema defaults."""
        with self._lock:
            self._epoch += 1
            self._debouncer.cancel()
            self._seed_defaults()
        logger.info(f"Form '{self.schema.id}' reset")

    def dispose(self) -> None:
        """Tear the instance down; a pending total computation is dropped."""
        with self._lock:
            self._disposed = True
            self._epoch += 1
            self._debouncer.cancel()
        logger.debug(f"Form '{self.schema.id}' disposed")

    @property
    def disposed(self) -> bool:
        return self._disposed

    # Field access

    @property
    def fields(self) -> List[FieldConfig]:
        return list(iter_fields(self.schema))

    @property
    def selected_currency(self) -> str:
        return self.values.get(CURRENCY_FIELD) or DEFAULT_CURRENCY

    def today(self) -> date:
        return self.clock().date()

    def get_value(self, name: str) -> Any:
        return self.values.get(name)

    def get_error(self, name: str) -> Optional[str]:
        return self.errors.get(name)

    def set_value(self, name: str, value: Any, validate: bool = True) -> None:
        """
        Write a field value.

        Later writes replace earlier ones. Validation runs when the trigger
        allows it for a change event, and a change to a watched field
        schedules the debounced total income computation.
        """
        with self._lock:
            if self._disposed:
                logger.warning(f"Ignoring write to '{name}' on a disposed form")
                return
            self.values[name] = value

            if validate and self.trigger.should_validate(
                ValidationTrigger.CHANGE, name in self.errors, self.is_submitted
            ):
                self.validate_field(name)

            if name in WATCHED_FIELDS:
                self.schedule_total()

    def blur(self, name: str) -> None:
        """Record that a field lost focus and validate it if the mode asks for it."""
        with self._lock:
            self.touched.add(name)
            if self.focused_field == name:
                self.focused_field = None
            if self.trigger.should_validate(ValidationTrigger.BLUR, name in self.errors, self.is_submitted):
                self.validate_field(name)

    def focus(self, name: str) -> None:
        self.focused_field = name

    # Validation

    def validate_field(self, name: str) -> Optional[str]:
        """Validate the whole record and keep only this field's outcome."""
        result = validate_form(self.values, record_model=self.record_model)
        message = result.error_for(name)
        if message:
            self.errors[name] = message
        else:
            self.errors.pop(name, None)
        return message

    def validate(self) -> ValidationResult:
        """Validate every field, replacing the error map."""
        with self._lock:
            result = validate_form(self.values, record_model=self.record_model)
            self.errors = dict(result.errors)
            return result

    # Derived total income

    def schedule_total(self) -> None:
        self._debouncer(
            self._epoch,
            self.values.get(CURRENCY_FIELD) or DEFAULT_CURRENCY,
            self.values.get(INCOME_FIELD) or 0,
            self.values.get(START_DATE_FIELD),
            self.values.get(END_DATE_FIELD),
        )

    def flush_total(self) -> None:
        """Run a pending total computation immediately."""
        with self._lock:
            self._debouncer.flush()

    @property
    def total_pending(self) -> bool:
        return self._debouncer.pending

    def _recompute_total(self, epoch: int, currency_code: str, income: Any, start: Any, end: Any) -> None:
        if self._disposed or epoch != self._epoch:
            return
        total = calculate_total_income(income, start, end, now=self.clock)
        with self._lock:
            if self._disposed or epoch != self._epoch:
                logger.debug("Dropping total income computed before the form was reset or disposed")
                return
            self.total_income = total
            self.total_income_display = format_currency(total, currency_code)
            self.computation_count += 1
        logger.debug(f"Total income updated: {self.total_income_display}")
