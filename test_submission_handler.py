"""
Unit tests for submission_handler module.
"""

import json
import shutil
import tempfile
from datetime import date, datetime
from pathlib import Path
from unittest.mock import patch

from form_engine.exceptions import ExportError, SanitizationError
from form_engine.exporter import DirectorySink, MemorySink
from form_engine.form_state import FormInstance
from form_engine.schema_loader import load_schema
from form_engine.submission_handler import (
    IN_PROGRESS_MESSAGE,
    VALIDATION_FAILED_MESSAGE,
    SubmissionHandler,
)

BUNDLED_SCHEMA = Path(__file__).parent / "schemas" / "employment_form.json"


class NoopTimer:

    def __init__(self, interval, function):
        pass

    def start(self):
        pass

    def cancel(self):
        pass


def make_form():
    return FormInstance(
        load_schema(BUNDLED_SCHEMA),
        timer_factory=NoopTimer,
        clock=lambda: datetime(2024, 3, 15)
    )


def fill(form, **overrides):
    values = {
        'employerName': 'Acme Corporation',
        'currency': 'EUR',
        'annualGrossIncome': 75000,
        'employmentStartDate': date(2020, 2, 1),
        'employmentEndDate': date(2023, 8, 31),
        'notes': '',
    }
    values.update(overrides)
    for name, value in values.items():
        form.set_value(name, value)


class TestSubmissionHandler:
    """Test class for submission handler."""

    def setup_method(self):
        """Set up test environment before each test."""
        self.test_dir = tempfile.mkdtemp()
        self.form = make_form()

    def teardown_method(self):
        """Clean up after each test."""
        shutil.rmtree(self.test_dir)

    def test_successful_submission(self):
        fill(self.form)
        sink = MemorySink()

        result = SubmissionHandler.submit(self.form, sink, today=date(2024, 3, 15))

        assert result.success is True
        assert result.message == "Form saved successfully!"
        assert result.export.filename == 'employment-form-2024-03-15.json'
        assert json.loads(sink.payload) == {
            'employerName': 'Acme Corporation',
            'currency': 'EUR',
            'annualGrossIncome': 75000,
            'employmentStartDate': '2020-02-01',
            'employmentEndDate': '2023-08-31',
        }
        assert self.form.is_submitting is False
        assert self.form.is_submitted is True

    def test_special_characters_escaped_in_export(self):
        # Escaping happens after validation, on the exported copy only
        fill(self.form, notes='Bonus & <b>"stock"</b> isn\'t vested/paid')
        sink = MemorySink()

        result = SubmissionHandler.submit(self.form, sink, today=date(2024, 3, 15))

        exported = json.loads(sink.payload)
        assert result.success is True
        assert exported['notes'] == (
            'Bonus &amp; &lt;b&gt;&quot;stock&quot;&lt;&#x2F;b&gt; isn&#x27;t vested&#x2F;paid'
        )
        assert exported['annualGrossIncome'] == 75000
        assert exported['employmentStartDate'] == '2020-02-01'
        assert self.form.values['notes'].startswith('Bonus & <b>')

    def test_employer_name_escaped_once(self):
        fill(self.form, employerName="Smith & O'Neil")
        sink = MemorySink()

        result = SubmissionHandler.submit(self.form, sink)

        assert result.record['employerName'] == 'Smith &amp; O&#x27;Neil'
        assert json.loads(sink.payload)['employerName'] == 'Smith &amp; O&#x27;Neil'

    def test_validation_failure_blocks_export(self):
        fill(self.form, employerName='', employmentEndDate=date(2019, 1, 1))
        sink = MemorySink()

        result = SubmissionHandler.submit(self.form, sink)

        assert result.success is False
        assert result.message == VALIDATION_FAILED_MESSAGE
        assert result.errors == {'employerName': "Please enter the employer's name"}
        assert self.form.errors == result.errors
        assert result.export is None
        assert sink.payload is None
        assert self.form.is_submitting is False

    def test_cross_field_error_reported_on_end_date(self):
        fill(self.form, employmentEndDate=date(2020, 1, 1))

        result = SubmissionHandler.submit(self.form, MemorySink())

        assert result.errors == {'employmentEndDate': "Employment end date must be after the start date"}

    def test_submit_switches_to_re_validate_mode(self):
        SubmissionHandler.submit(self.form, MemorySink())
        assert 'employerName' in self.form.errors

        # reValidateMode onChange: fixing the field clears its error immediately
        self.form.set_value('employerName', 'Acme')
        assert 'employerName' not in self.form.errors

    def test_submission_already_in_progress(self):
        fill(self.form)
        self.form.is_submitting = True

        result = SubmissionHandler.submit(self.form, MemorySink())

        assert result.success is False
        assert result.message == IN_PROGRESS_MESSAGE

    def test_sanitization_error_reported(self):
        fill(self.form)
        with patch(
            'form_engine.submission_handler.sanitize_form_data',
            side_effect=SanitizationError("Failed to sanitize data: boom")
        ):
            result = SubmissionHandler.submit(self.form, MemorySink())

        assert result.success is False
        assert result.message == "Failed to sanitize data: boom"
        assert isinstance(result.error, SanitizationError)
        assert result.export is None
        assert self.form.is_submitting is False

    def test_export_to_directory(self):
        fill(self.form)
        export_dir = Path(self.test_dir) / 'exports'

        result = SubmissionHandler.submit(
            self.form, DirectorySink(export_dir), today=date(2024, 3, 15), filename_prefix='employment'
        )

        assert result.success is True
        assert (export_dir / 'employment-2024-03-15.json').exists()

    def test_export_failure_reported(self):
        fill(self.form)
        export_dir = Path(self.test_dir) / 'exports'

        with patch('form_engine.exporter.os.replace', side_effect=PermissionError("denied")):
            result = SubmissionHandler.submit(self.form, DirectorySink(export_dir))

        assert result.success is False
        assert result.export.kind == ExportError.SECURITY
        assert result.message == "Security error: Cannot save file due to access restrictions."
        assert self.form.is_submitting is False
