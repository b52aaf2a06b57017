"""
Dynamic form renderer for the employment form app.
Maps field bindings to Streamlit widgets, section by section.
"""

import streamlit as st
from datetime import date
from typing import Any, Dict, List, Optional
import logging

from .currencies import get_currency_symbol
from .field_bindings import (
    CurrencyBinding,
    DateBinding,
    FieldBinding,
    NumberBinding,
    SelectBinding,
    TextareaBinding,
    TextBinding,
    bind_field,
)
from .form_state import FormInstance
from .schema_models import FieldGroup, FormAction, FormSection

logger = logging.getLogger(__name__)

ROW_HEIGHT_PX = 25
MIN_TEXT_AREA_HEIGHT = 68
GRID_COLUMNS = 12

# st.date_input only offers ten years either side of today unless told otherwise
EARLIEST_DATE = date(1900, 1, 1)
LATEST_DATE = date(2100, 12, 31)

RENDERED_ACTION_TYPES = ('submit', 'reset', 'button')


class FormRenderer:
    """Renders a form instance with Streamlit widgets."""

    @staticmethod
    def widget_key(name: str, version: int = 0) -> str:
        """Session-state key of a field's widget; the version changes when the form is replaced."""
        return f"field_{name}_{version}"

    @staticmethod
    def render_form(form: FormInstance, version: int = 0) -> Optional[FormAction]:
        """
        Render the whole form.

        Args:
            form: Active form instance
            version: Form version, part of every widget key

        Returns:
            The action whose button was clicked, if any
        """
        schema = form.schema
        if schema.title:
            st.header(schema.title)
        if schema.description:
            st.caption(schema.description)

        for section in schema.sections:
            FormRenderer.render_section(section, form, version)

        return FormRenderer.render_actions(schema.actions, form)

    @staticmethod
    def render_section(section: FormSection, form: FormInstance, version: int = 0) -> None:
        if section.title:
            st.subheader(section.title)
        if section.description:
            st.caption(section.description)

        for group in section.groups:
            FormRenderer.render_group(group, form, version)

    @staticmethod
    def render_group(group: FieldGroup, form: FormInstance, version: int = 0) -> None:
        """Row groups are laid out in columns sized by the fields' grid spans."""
        bindings = [b for b in (bind_field(config, form) for config in group.fields) if b is not None]
        if not bindings:
            return

        if group.direction == 'column' or len(bindings) == 1:
            for binding in bindings:
                FormRenderer.render_field(binding, version)
            return

        spans = [b.config.grid.span() if b.config.grid else GRID_COLUMNS for b in bindings]
        cols = st.columns(spans)
        for col, binding in zip(cols, bindings):
            with col:
                FormRenderer.render_field(binding, version)

    @staticmethod
    def render_field(binding: FieldBinding, version: int = 0) -> None:
        """Render one field's widget and its error message."""
        key = FormRenderer.widget_key(binding.name, version)
        try:
            if isinstance(binding, CurrencyBinding):
                FormRenderer._render_currency_input(binding, key)
            elif isinstance(binding, TextareaBinding):
                FormRenderer._render_text_area(binding, key)
            elif isinstance(binding, TextBinding):
                FormRenderer._render_text_input(binding, key)
            elif isinstance(binding, NumberBinding):
                FormRenderer._render_number_input(binding, key)
            elif isinstance(binding, DateBinding):
                FormRenderer._render_date_input(binding, key)
            elif isinstance(binding, SelectBinding):
                FormRenderer._render_select(binding, key)
            else:
                logger.warning(f"No widget for field type '{binding.field_type}'")
                return
        except Exception as e:
            st.error(f"Error rendering field {binding.name}: {str(e)}")
            logger.error(f"Error rendering field {binding.name}: {e}", exc_info=True)
            return

        if binding.error:
            st.error(binding.error)

    # Widget callbacks

    @staticmethod
    def _commit(binding: FieldBinding, key: str) -> None:
        """Widget on_change callback: a committed widget edit is a change followed by a blur."""
        binding.on_focus()
        binding.on_change(st.session_state[key])
        binding.on_blur()

    @staticmethod
    def _commit_text(binding: FieldBinding, key: str) -> None:
        FormRenderer._commit(binding, key)
        # Show what the form stored (trimmed, truncated)
        st.session_state[key] = binding.display_value

    @staticmethod
    def _commit_currency(binding: CurrencyBinding, key: str) -> None:
        FormRenderer._commit(binding, key)
        st.session_state[key] = binding.raw_display

    @staticmethod
    def _commit_select(binding: SelectBinding, key: str) -> None:
        if st.session_state[key] is None:
            return
        FormRenderer._commit(binding, key)

    @staticmethod
    def _common_kwargs(binding: FieldBinding, key: str) -> Dict[str, Any]:
        return {
            'label': binding.label,
            'key': key,
            'help': binding.config.helper_text,
            'disabled': not binding.editable,
        }

    @staticmethod
    def _seed(key: str, value: Any) -> None:
        if key not in st.session_state:
            st.session_state[key] = value

    # Widgets

    @staticmethod
    def _render_text_input(binding: TextBinding, key: str) -> None:
        """Render text input field."""
        FormRenderer._seed(key, binding.display_value)
        st.text_input(
            **FormRenderer._common_kwargs(binding, key),
            placeholder=binding.config.placeholder,
            max_chars=binding.config.max_length,
            on_change=FormRenderer._commit_text,
            args=(binding, key),
        )

    @staticmethod
    def _render_text_area(binding: TextareaBinding, key: str) -> None:
        """Render text area field sized from its row count."""
        FormRenderer._seed(key, binding.display_value)
        st.text_area(
            **FormRenderer._common_kwargs(binding, key),
            placeholder=binding.config.placeholder,
            height=max(MIN_TEXT_AREA_HEIGHT, binding.rows * ROW_HEIGHT_PX),
            max_chars=binding.config.max_length,
            on_change=FormRenderer._commit_text,
            args=(binding, key),
        )

    @staticmethod
    def _render_number_input(binding: NumberBinding, key: str) -> None:
        """Render number input field; every numeric argument is a float."""
        config = binding.config
        value = binding.value
        FormRenderer._seed(key, float(value) if value is not None else None)
        st.number_input(
            **FormRenderer._common_kwargs(binding, key),
            placeholder=config.placeholder,
            min_value=float(config.min) if config.min is not None else None,
            max_value=float(config.max) if config.max is not None else None,
            step=float(config.step) if config.step is not None else 1.0,
            on_change=FormRenderer._commit,
            args=(binding, key),
        )

    @staticmethod
    def _render_currency_input(binding: CurrencyBinding, key: str) -> None:
        """
        Render a currency field.

        The widget holds the raw digits; the formatted amount in the selected
        currency is shown underneath.
        """
        FormRenderer._seed(key, binding.raw_display)
        symbol = get_currency_symbol(binding.form.selected_currency)
        kwargs = FormRenderer._common_kwargs(binding, key)
        kwargs['label'] = f"{binding.label} ({symbol})"
        st.text_input(
            **kwargs,
            placeholder=binding.config.placeholder,
            on_change=FormRenderer._commit_currency,
            args=(binding, key),
        )
        if binding.formatted_display:
            st.caption(binding.formatted_display)

    @staticmethod
    def _render_date_input(binding: DateBinding, key: str) -> None:
        """Render date input limited to the selectable range."""
        FormRenderer._seed(key, binding.value)
        st.date_input(
            **FormRenderer._common_kwargs(binding, key),
            min_value=binding.min_selectable or EARLIEST_DATE,
            max_value=binding.max_selectable or LATEST_DATE,
            format="YYYY-MM-DD",
            on_change=FormRenderer._commit,
            args=(binding, key),
        )

    @staticmethod
    def _render_select(binding: SelectBinding, key: str) -> None:
        """Render selectbox (or multiselect) field."""
        kwargs = FormRenderer._common_kwargs(binding, key)
        if binding.config.multiple:
            value = binding.value if isinstance(binding.value, list) else []
            FormRenderer._seed(key, [v for v in value if v in binding.options])
            st.multiselect(
                **kwargs,
                options=binding.options,
                format_func=binding.option_label,
                on_change=FormRenderer._commit,
                args=(binding, key),
            )
            return

        FormRenderer._seed(key, binding.value if binding.value in binding.options else None)
        st.selectbox(
            **kwargs,
            options=binding.options,
            format_func=binding.option_label,
            placeholder=binding.config.placeholder or "Select...",
            on_change=FormRenderer._commit_select,
            args=(binding, key),
        )

    # Derived total and actions

    @staticmethod
    def render_total(form: FormInstance) -> None:
        """Show the last computed total income."""
        st.metric("Total Income", form.total_income_display)
        if form.total_pending:
            st.caption("Recalculating...")

    @staticmethod
    def render_actions(actions: List[FormAction], form: FormInstance) -> Optional[FormAction]:
        """
        Render action buttons side by side.

        Returns:
            The clicked action, or None; unknown action types are not rendered
        """
        renderable = [a for a in actions if a.type in RENDERED_ACTION_TYPES]
        for action in actions:
            if action.type not in RENDERED_ACTION_TYPES:
                logger.warning(f"Unknown action type '{action.type}' for action '{action.id}'")
        if not renderable:
            return None

        clicked = None
        cols = st.columns(len(renderable))
        for col, action in zip(cols, renderable):
            with col:
                if st.button(
                    action.label,
                    key=f"action_{action.id}",
                    type="primary" if action.variant == 'contained' or action.type == 'submit' else "secondary",
                    disabled=form.is_submitting,
                ):
                    clicked = action
        return clicked
