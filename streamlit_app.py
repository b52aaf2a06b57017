"""
Main Streamlit application for the employment form.
Schema-driven employment form with a live total income and JSON export.
"""

import streamlit as st
import logging

from form_engine.config_loader import get_config_value, load_config
from form_engine.exporter import DirectorySink, MemorySink
from form_engine.schema_loader import get_configured_schema


def get_logging_level(level_str):
    """Map string logging level to logging constant."""
    level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }
    return level_map.get(str(level_str).upper(), logging.INFO)


# Load configuration early
config = load_config()

# Configure logging from config
try:
    log_level_str = get_config_value(config, 'logging', 'level', 'INFO')
    log_format = get_config_value(config, 'logging', 'format', logging.BASIC_FORMAT)
    logging.basicConfig(level=get_logging_level(log_level_str), format=log_format)
    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured to level: {log_level_str}")
except (TypeError, ValueError) as e:
    # Fallback to INFO if the configured format is unusable
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)
    logger.error(f"Failed to configure logging from config: {e}, using INFO level")

app_name = get_config_value(config, 'app', 'name', 'Employment Form')
logger.info(f"Starting {app_name} version {get_config_value(config, 'app', 'version', 'Unknown')}")

# Page configuration
st.set_page_config(
    page_title=app_name,
    page_icon="💼",
    layout="centered",
)

# How often the derived total is refreshed on screen
TOTAL_REFRESH_SECONDS = 0.5


def main():
    """Main application entry point."""
    from form_engine.error_handler import ErrorHandler, ErrorType

    try:
        if not init_session_state():
            return
        render_notifications()
        render_form()
        render_last_submission()

    except Exception as e:
        ErrorHandler.handle_error(
            e,
            "application",
            ErrorType.SYSTEM,
            recovery_options=ErrorHandler.create_recovery_options("application")
        )


def init_session_state():
    """
    Load the schema and mount the form once per session.

    Returns:
        True when a form is mounted, False when the schema could not be loaded
    """
    from form_engine.error_handler import ErrorHandler, ErrorType
    from form_engine.exceptions import SchemaError
    from form_engine.session_manager import SessionManager

    if 'form' in st.session_state and st.session_state.form is not None:
        return True

    # Kept even when loading fails, for the schema recovery action
    st.session_state.setdefault('config', config)

    try:
        with st.spinner("Loading form..."):
            schema = get_configured_schema(config)
    except SchemaError as e:
        ErrorHandler.handle_error(
            e,
            "loading schema",
            ErrorType.SCHEMA,
            recovery_options=ErrorHandler.create_recovery_options("schema")
        )
        return False

    SessionManager.initialize(schema, config)
    return True


def render_notifications():
    from form_engine.session_manager import SessionManager

    for notification in SessionManager.pop_notifications():
        if notification['level'] == 'success':
            st.success(notification['message'])
        elif notification['level'] == 'error':
            st.error(notification['message'])
        else:
            st.info(notification['message'])


@st.fragment(run_every=TOTAL_REFRESH_SECONDS)
def render_total():
    """Re-rendered on a timer so the debounced total shows up without user input."""
    from form_engine.form_renderer import FormRenderer
    from form_engine.session_manager import SessionManager

    FormRenderer.render_total(SessionManager.get_form())


def render_form():
    """Render the form and dispatch the clicked action."""
    from form_engine.form_renderer import FormRenderer
    from form_engine.session_manager import SessionManager

    form = SessionManager.get_form()
    action = FormRenderer.render_form(form, SessionManager.get_form_version())
    render_total()

    if action is None:
        return

    if action.type == 'submit':
        submit_form()
    elif action.type == 'reset':
        SessionManager.reset_form()
        st.rerun()
    else:
        logger.info(f"Action '{action.id}' has no handler ({action.on_click})")


def submit_form():
    """Validate, sanitize and export the form, then show the outcome."""
    from form_engine.session_manager import SessionManager
    from form_engine.submission_handler import SubmissionHandler

    form = SessionManager.get_form()
    form.flush_total()

    if get_config_value(config, 'export', 'target', 'download') == 'directory':
        sink = DirectorySink(get_config_value(config, 'export', 'directory', 'exports'))
    else:
        sink = MemorySink()

    with st.spinner("Saving..."):
        result = SubmissionHandler.submit(
            form,
            sink,
            filename_prefix=get_config_value(config, 'export', 'filename_prefix', 'employment-form'),
        )

    if result.success:
        download = None
        if isinstance(sink, MemorySink):
            download = {'filename': sink.filename, 'payload': sink.payload}
        SessionManager.set_last_submission({'message': result.message, 'download': download})
        SessionManager.add_notification(result.message, 'success')
        st.rerun()
    else:
        report_submission_failure(result)


def report_submission_failure(result):
    """Show why a submit did not export the form."""
    from form_engine.error_handler import ErrorHandler, ErrorType
    from form_engine.exceptions import ExportError

    if result.export is not None:
        export = result.export
        ErrorHandler.handle_error(
            ExportError(export.message, export.kind or ExportError.OTHER),
            f"exporting {export.filename}",
            ErrorType.EXPORT,
            recovery_options=ErrorHandler.create_recovery_options("export")
        )
    elif result.error is not None:
        ErrorHandler.handle_error(
            result.error,
            "sanitizing form data",
            ErrorType.SANITIZATION,
            recovery_options=ErrorHandler.create_recovery_options("submit")
        )
    else:
        # Field errors are already shown under their widgets
        st.error(result.message)


def render_last_submission():
    """Offer the last exported record as a download."""
    from form_engine.session_manager import SessionManager

    submission = SessionManager.get_last_submission()
    if not submission or not submission.get('download'):
        return

    download = submission['download']
    st.download_button(
        "⬇️ Download JSON",
        data=download['payload'],
        file_name=download['filename'],
        mime="application/json",
        key="download_export",
    )


if __name__ == "__main__":
    main()
