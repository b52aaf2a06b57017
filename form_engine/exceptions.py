"""
Custom exception classes for the employment form engine.

Validation failures are not exceptions: they are collected into a
ValidationResult and stored in form state. The classes here cover the
failures that abort an operation (schema loading, sanitization, export).
"""

from typing import Optional, Dict, Any, List


class FormEngineError(Exception):
    """
    Base exception for form engine errors.

    Attributes:
        message: Error message
        context: Additional context information
        recovery_suggestions: List of suggested recovery actions
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 recovery_suggestions: Optional[List[str]] = None):
        self.message = message
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def get_full_details(self) -> Dict[str, Any]:
        """Get complete error details including context and suggestions."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'context': self.context,
            'recovery_suggestions': self.recovery_suggestions
        }


class SchemaError(FormEngineError):
    """Raised when a form schema document cannot be turned into a FormSchema."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        context = {'source': source} if source else {}
        super().__init__(
            message,
            context,
            [
                "Check that the schema file exists and is valid JSON or YAML",
                "Verify that every field has a unique 'name'",
            ]
        )


class SanitizationError(FormEngineError):
    """Raised when form data cannot be sanitized for export."""


class ExportError(FormEngineError):
    """
    Raised when the sanitized record cannot be handed to the artifact sink.

    Attributes:
        kind: One of 'security', 'quota' or 'other'
        original_error: The underlying exception
    """

    SECURITY = "security"
    QUOTA = "quota"
    OTHER = "other"

    def __init__(self, message: str, kind: str = OTHER,
                 original_error: Optional[Exception] = None):
        self.kind = kind
        self.original_error = original_error
        context = {'kind': kind}
        if original_error is not None:
            context['original_error_type'] = type(original_error).__name__
            context['original_error_message'] = str(original_error)
        super().__init__(message, context, ["Try exporting the form again"])
