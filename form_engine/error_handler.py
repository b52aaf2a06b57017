"""
Error handling utilities for the employment form app.
Provides user-friendly messages, analytics logging, and recovery options.
"""

import streamlit as st
import logging
import traceback
from typing import Dict, Any, Optional, List
from datetime import datetime
from pathlib import Path
import json

from .exceptions import ExportError, SanitizationError, SchemaError
from .session_manager import SessionManager

logger = logging.getLogger(__name__)

ERROR_LOG_PATH = Path("logs/error_analytics.jsonl")


class ErrorType:
    """Error type constants."""
    SANITIZATION = "sanitization"
    EXPORT = "export"
    SCHEMA = "schema"
    SYSTEM = "system"


class ErrorHandler:
    """Error handling for the employment form app."""

    @staticmethod
    def handle_error(
        error: Exception,
        context: str,
        error_type: str = ErrorType.SYSTEM,
        user_message: Optional[str] = None,
        recovery_options: Optional[List[Dict[str, Any]]] = None,
        show_details: bool = False
    ) -> None:
        """
        Handle errors with user-friendly messages and recovery options.

        Args:
            error: The exception that occurred
            context: Context where the error occurred
            error_type: Type of error (from ErrorType constants)
            user_message: Custom user-friendly message
            recovery_options: List of recovery actions
            show_details: Whether to show technical details
        """
        logger.error(f"Error in {context}: {str(error)}", exc_info=True)

        if not user_message:
            user_message = ErrorHandler._get_user_friendly_message(error, error_type)

        ErrorHandler._display_error(
            user_message,
            error,
            context,
            recovery_options,
            show_details
        )

        ErrorHandler._log_error_analytics(error, context, error_type)

    @staticmethod
    def _get_user_friendly_message(error: Exception, error_type: str) -> str:
        """Generate user-friendly error messages based on error type."""
        # Export errors already carry a classified message
        if isinstance(error, ExportError):
            return error.message

        error_messages = {
            ErrorType.SANITIZATION: {
                SanitizationError: "🧹 The form data could not be prepared for saving.",
                "default": "🧹 The form data could not be prepared for saving."
            },

            ErrorType.EXPORT: {
                PermissionError: "🔒 Security error: Cannot save file due to access restrictions.",
                OSError: "💾 The form could not be written. Please try again.",
                "default": "💾 Failed to export the form. Please try again."
            },

            ErrorType.SCHEMA: {
                SchemaError: "📋 The form definition is invalid. Please check the schema file.",
                "default": "📋 Schema error occurred. Please check your schema files."
            },

            ErrorType.SYSTEM: {
                MemoryError: "💻 System is running low on memory. Please try again or contact support.",
                ImportError: "💻 Required system component is missing. Please contact support.",
                "default": "💻 Something went wrong. You can reset the form or reload the page."
            }
        }

        error_type_messages = error_messages.get(error_type, error_messages[ErrorType.SYSTEM])

        for exception_type, message in error_type_messages.items():
            if exception_type != "default" and isinstance(error, exception_type):
                return message

        return error_type_messages.get("default", "An unexpected error occurred.")

    @staticmethod
    def _display_error(
        user_message: str,
        error: Exception,
        context: str,
        recovery_options: Optional[List[Dict[str, Any]]] = None,
        show_details: bool = False
    ) -> None:
        """Display error message to user with recovery options."""
        st.error(user_message)

        if recovery_options:
            st.subheader("🔧 Suggested Actions:")

            for i, option in enumerate(recovery_options):
                col1, col2 = st.columns([3, 1])

                with col1:
                    st.write(f"**{option['title']}**")
                    st.write(option['description'])

                with col2:
                    if st.button(option['button_text'], key=f"recovery_{i}"):
                        if 'action' in option and callable(option['action']):
                            try:
                                option['action']()
                            except Exception as e:
                                logger.error(f"Recovery action '{option['title']}' failed: {e}")
                                st.error(f"Recovery action failed: {str(e)}")

        if show_details or st.checkbox("Show technical details", key=f"details_{id(error)}"):
            with st.expander("🔍 Technical Details"):
                st.write(f"**Error Type:** {type(error).__name__}")
                st.write(f"**Context:** {context}")
                st.write(f"**Error Message:** {str(error)}")
                st.code(''.join(traceback.format_exception(type(error), error, error.__traceback__)))

    @staticmethod
    def _log_error_analytics(error: Exception, context: str, error_type: str) -> None:
        """Append one JSON line describing the error to the analytics log."""
        try:
            error_data = {
                'timestamp': datetime.now().isoformat(),
                'error_type': error_type,
                'exception_type': type(error).__name__,
                'context': context,
                'message': str(error),
                'user_agent': 'streamlit_app'
            }

            ERROR_LOG_PATH.parent.mkdir(parents=True, exist_ok=True)

            with open(ERROR_LOG_PATH, 'a', encoding='utf-8') as f:
                json.dump(error_data, f)
                f.write('\n')

        except OSError as e:
            logger.error(f"Failed to log error analytics: {e}")

    @staticmethod
    def create_recovery_options(context: str) -> List[Dict[str, Any]]:
        """
        Recovery actions offered after an error.

        None of them resumes the interrupted operation. "Reset Form" mounts a
        fresh form instance and "Reload" reruns the script. Schema failures
        happen before a form exists, so they get "Check Schema" instead of
        "Reset Form".
        """
        recovery_options: List[Dict[str, Any]] = []

        if "schema" in context.lower():
            recovery_options.append({
                'title': 'Check Schema',
                'description': 'Verify the form schema file referenced in config.yaml',
                'button_text': '📋 Check Schema',
                'action': lambda: ErrorHandler._show_schema_info()
            })
        else:
            recovery_options.append({
                'title': 'Reset Form',
                'description': 'Discard the current entries and start with an empty form',
                'button_text': '🔄 Reset Form',
                'action': lambda: ErrorHandler._reset_form()
            })

        recovery_options.append({
            'title': 'Reload',
            'description': 'Reload the page',
            'button_text': '↻ Reload',
            'action': lambda: st.rerun()
        })

        return recovery_options

    @staticmethod
    def _reset_form() -> None:
        """Replace the active form with a fresh instance and rerun."""
        SessionManager.reset_form()
        st.success("🔄 Form reset")
        st.rerun()

    @staticmethod
    def _show_schema_info() -> None:
        config = SessionManager.get_config()
        schema_path = Path(config.get('schema', {}).get('path', ''))
        if schema_path.exists():
            st.success(f"✅ Schema file found: {schema_path}")
        else:
            st.error(f"❌ Schema file missing: {schema_path}")

