"""
Submission handler for the employment form.
Runs the submit workflow: validate, sanitize, export.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional

from pydantic import BaseModel

from .exceptions import SanitizationError
from .exporter import DEFAULT_FILENAME_PREFIX, ArtifactSink, ExportResult, export_record
from .form_state import FormInstance
from .sanitize import sanitize_form_data

logger = logging.getLogger(__name__)

VALIDATION_FAILED_MESSAGE = "Please fix the highlighted fields before saving."
IN_PROGRESS_MESSAGE = "A submission is already in progress."


@dataclass
class SubmissionResult:
    """
    Outcome of a submit attempt.

    Attributes:
        success: Whether the record was exported
        errors: Field errors that blocked the submission
        message: User-facing message
        export: Export result, when the export step ran
        record: The sanitized record that was exported
        error: Exception that aborted the submission before export
    """
    success: bool
    errors: Dict[str, str] = field(default_factory=dict)
    message: str = ""
    export: Optional[ExportResult] = None
    record: Optional[Dict[str, Any]] = None
    error: Optional[Exception] = None


class SubmissionHandler:
    """Handles the submission workflow for a form instance."""

    @staticmethod
    def build_payload(record: BaseModel) -> Dict[str, Any]:
        """Validated record as a dict keyed by form field name, empty optionals dropped."""
        return record.model_dump(by_alias=True, exclude_none=True)

    @staticmethod
    def submit(
        form: FormInstance,
        sink: ArtifactSink,
        today: Optional[date] = None,
        filename_prefix: str = DEFAULT_FILENAME_PREFIX
    ) -> SubmissionResult:
        """
        Validate, sanitize and export the form's current values.

        Args:
            form: Active form instance
            sink: Where the exported artifact is delivered
            today: Date used in the artifact name
            filename_prefix: Artifact name prefix

        Returns:
            SubmissionResult describing what happened
        """
        if form.is_submitting:
            logger.warning(f"Submit ignored for '{form.schema.id}': already submitting")
            return SubmissionResult(success=False, message=IN_PROGRESS_MESSAGE)

        form.is_submitting = True
        form.is_submitted = True
        try:
            # Step 1: Validate every field
            validation = form.validate()
            if not validation.success:
                logger.warning(
                    f"Validation failed for '{form.schema.id}': {len(validation.errors)} errors"
                )
                return SubmissionResult(
                    success=False,
                    errors=validation.errors,
                    message=VALIDATION_FAILED_MESSAGE,
                )

            # Step 2: Sanitize the validated record
            payload = SubmissionHandler.build_payload(validation.record)
            sanitized = sanitize_form_data(payload)

            # Step 3: Export
            export = export_record(sanitized, sink, today=today, prefix=filename_prefix)
            if export.success:
                logger.info(f"Submitted '{form.schema.id}' as {export.filename}")
            return SubmissionResult(
                success=export.success,
                message=export.message,
                export=export,
                record=sanitized,
            )

        except SanitizationError as e:
            logger.error(f"Sanitization failed for '{form.schema.id}': {e}", exc_info=True)
            return SubmissionResult(success=False, message=str(e), error=e)

        finally:
            form.is_submitting = False
