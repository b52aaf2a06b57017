"""
Unit tests for error_handler module.
"""

import json
import os
import shutil
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

from form_engine.exceptions import ExportError, SanitizationError, SchemaError
from form_engine.error_handler import ErrorHandler, ErrorType


def mock_streamlit():
    st = MagicMock()
    st.columns.side_effect = lambda widths: [MagicMock() for _ in widths]
    st.button.return_value = False
    st.checkbox.return_value = False
    return st


class TestErrorHandler:
    """Test class for error handler."""

    def setup_method(self):
        """Set up test environment before each test."""
        self.test_dir = tempfile.mkdtemp()
        self.original_cwd = os.getcwd()
        os.chdir(self.test_dir)

    def teardown_method(self):
        """Clean up after each test."""
        os.chdir(self.original_cwd)
        shutil.rmtree(self.test_dir)

    def read_analytics(self):
        with open(Path("logs") / "error_analytics.jsonl", encoding='utf-8') as f:
            return [json.loads(line) for line in f]

    def test_get_user_friendly_message_export(self):
        error = ExportError("Security error: Cannot save file due to access restrictions.", ExportError.SECURITY)
        message = ErrorHandler._get_user_friendly_message(error, ErrorType.EXPORT)
        assert message == "Security error: Cannot save file due to access restrictions."

        message = ErrorHandler._get_user_friendly_message(PermissionError("denied"), ErrorType.EXPORT)
        assert "🔒" in message

        message = ErrorHandler._get_user_friendly_message(RuntimeError("broken"), ErrorType.EXPORT)
        assert "failed to export" in message.lower()

    def test_get_user_friendly_message_schema(self):
        message = ErrorHandler._get_user_friendly_message(SchemaError("bad"), ErrorType.SCHEMA)
        assert "form definition is invalid" in message.lower()

        message = ErrorHandler._get_user_friendly_message(ValueError("odd"), ErrorType.SCHEMA)
        assert "📋" in message

    def test_get_user_friendly_message_sanitization(self):
        message = ErrorHandler._get_user_friendly_message(SanitizationError("boom"), ErrorType.SANITIZATION)
        assert "prepared for saving" in message

    def test_get_user_friendly_message_unknown_type(self):
        message = ErrorHandler._get_user_friendly_message(RuntimeError("x"), "nonsense")
        assert message == "💻 Something went wrong. You can reset the form or reload the page."

    def test_handle_error_displays_and_records(self):
        st = mock_streamlit()
        with patch('form_engine.error_handler.st', st):
            ErrorHandler.handle_error(SanitizationError("boom"), "sanitizing form data", ErrorType.SANITIZATION)

        st.error.assert_called_once()
        assert "prepared for saving" in st.error.call_args[0][0]

        entries = self.read_analytics()
        assert len(entries) == 1
        assert entries[0]['error_type'] == ErrorType.SANITIZATION
        assert entries[0]['exception_type'] == 'SanitizationError'
        assert entries[0]['context'] == 'sanitizing form data'

    def test_handle_error_custom_message(self):
        st = mock_streamlit()
        with patch('form_engine.error_handler.st', st):
            ErrorHandler.handle_error(RuntimeError("x"), "render")
            ErrorHandler.handle_error(RuntimeError("x"), "render", user_message="Custom")

        assert st.error.call_args_list[-1][0][0] == "Custom"
        assert len(self.read_analytics()) == 2

    def test_recovery_buttons_rendered(self):
        st = mock_streamlit()
        options = ErrorHandler.create_recovery_options("rendering form")

        with patch('form_engine.error_handler.st', st):
            ErrorHandler.handle_error(RuntimeError("x"), "rendering form", recovery_options=options)

        keys = [call.kwargs['key'] for call in st.button.call_args_list]
        assert keys == ['recovery_0', 'recovery_1']

    def test_recovery_action_runs_when_clicked(self):
        st = mock_streamlit()
        st.button.return_value = True
        action = MagicMock()
        options = [{'title': 'Try', 'description': 'Try again', 'button_text': 'Try', 'action': action}]

        with patch('form_engine.error_handler.st', st):
            ErrorHandler.handle_error(RuntimeError("x"), "ctx", recovery_options=options)

        action.assert_called_once()

    def test_create_recovery_options(self):
        titles = [o['title'] for o in ErrorHandler.create_recovery_options("submitting form")]
        assert titles == ['Reset Form', 'Reload']

        titles = [o['title'] for o in ErrorHandler.create_recovery_options("loading schema")]
        assert titles == ['Check Schema', 'Reload']

    def test_reset_form_recovery(self):
        st = mock_streamlit()
        with patch('form_engine.error_handler.st', st), \
                patch('form_engine.error_handler.SessionManager') as session_manager:
            ErrorHandler._reset_form()

        session_manager.reset_form.assert_called_once()
        st.rerun.assert_called_once()

    def test_show_schema_info(self):
        st = mock_streamlit()
        config = {'schema': {'path': 'missing/schema.json'}}
        with patch('form_engine.error_handler.st', st), \
                patch('form_engine.error_handler.SessionManager') as session_manager:
            session_manager.get_config.return_value = config
            ErrorHandler._show_schema_info()

        assert 'missing/schema.json' in st.error.call_args[0][0]
