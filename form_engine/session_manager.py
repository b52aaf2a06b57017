"""
Session state management for the Streamlit employment form app.
Owns the active form instance and the last submission outcome.
"""

import streamlit as st
from typing import Dict, Any, List, Optional
import logging

from .config_loader import get_config_value, get_debounce_seconds, get_default_config
from .currencies import get_default_currency
from .form_state import FormInstance
from .schema_models import FormSchema

logger = logging.getLogger(__name__)


class SessionManager:
    """Manages Streamlit session state for the employment form app."""

    @staticmethod
    def initialize(schema: FormSchema, config: Optional[Dict[str, Any]] = None):
        """
        Initialize session state; existing keys are left alone.

        Args:
            schema: Form schema the instance is mounted with
            config: Application configuration
        """
        defaults = {
            'config': config or get_default_config(),
            'schema': schema,
            'form': None,
            'form_version': 0,
            'last_submission': None,
            'notifications': [],
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

        if st.session_state.form is None:
            st.session_state.form = SessionManager._create_form()

        logger.info(f"Session initialized with form '{schema.id}'")

    @staticmethod
    def _create_form() -> FormInstance:
        config = st.session_state.get('config') or get_default_config()
        locale_name = get_config_value(config, 'locale', 'default')
        return FormInstance(
            st.session_state.schema,
            default_currency=get_default_currency(locale_name),
            debounce_seconds=get_debounce_seconds(config),
        )

    @staticmethod
    def get_form() -> FormInstance:
        """Get the active form instance."""
        return st.session_state.form

    @staticmethod
    def get_config() -> Dict[str, Any]:
        return st.session_state.get('config') or get_default_config()

    @staticmethod
    def get_form_version() -> int:
        """Counter bumped whenever the form is replaced; used in widget keys."""
        return st.session_state.get('form_version', 0)

    @staticmethod
    def reset_form():
        """Dispose the active form and mount a fresh instance from the schema."""
        old_form = st.session_state.get('form')
        if old_form is not None:
            old_form.dispose()

        st.session_state.form = SessionManager._create_form()
        st.session_state.form_version = st.session_state.get('form_version', 0) + 1
        st.session_state.last_submission = None
        SessionManager._clear_widget_state()
        logger.info(f"Form reset (version {st.session_state.form_version})")

    @staticmethod
    def _clear_widget_state():
        for key in list(st.session_state.keys()):
            if isinstance(key, str) and key.startswith('field_'):
                del st.session_state[key]

    @staticmethod
    def get_last_submission() -> Any:
        return st.session_state.get('last_submission')

    @staticmethod
    def set_last_submission(result: Any):
        st.session_state.last_submission = result

    @staticmethod
    def add_notification(message: str, level: str = 'info'):
        """Queue a message to show on the next run."""
        st.session_state.setdefault('notifications', []).append({'message': message, 'level': level})

    @staticmethod
    def pop_notifications() -> List[Dict[str, str]]:
        notifications = st.session_state.get('notifications', [])
        st.session_state.notifications = []
        return notifications

