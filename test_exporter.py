"""
Unit tests for exporter module.
"""

import errno
import json
import shutil
import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest

from form_engine.exceptions import ExportError
from form_engine.exporter import (
    QUOTA_MESSAGE,
    SECURITY_MESSAGE,
    SUCCESS_MESSAGE,
    ArtifactSink,
    DirectorySink,
    MemorySink,
    artifact_handle,
    build_filename,
    classify_export_error,
    export_record,
    serialize_record,
)

RECORD = {
    'employerName': 'Acme &amp; Co',
    'currency': 'EUR',
    'annualGrossIncome': 50000,
    'employmentStartDate': date(2023, 1, 1),
}


class FailingSink(ArtifactSink):
    """Sink whose delivery always fails with the given error."""

    def __init__(self, error):
        self.error = error
        self.released = 0

    def acquire(self, filename, payload):
        return {'filename': filename}

    def deliver(self, handle):
        raise self.error

    def release(self, handle):
        self.released += 1


class TestSerialization:
    """Test cases for file naming and JSON serialization."""

    def test_build_filename(self):
        assert build_filename(date(2024, 3, 15)) == 'employment-form-2024-03-15.json'
        assert build_filename(date(2024, 3, 15), 'backup') == 'backup-2024-03-15.json'

    def test_serialize_record(self):
        text = serialize_record({**RECORD, 'total': Decimal('1234.50'), 'city': 'Zürich'})

        assert text.startswith('{\n  "employerName"')
        data = json.loads(text)
        assert data['employmentStartDate'] == '2023-01-01'
        assert data['total'] == 1234.5
        assert data['city'] == 'Zürich'

    def test_whole_decimal_serialized_as_integer(self):
        assert json.loads(serialize_record({'n': Decimal('10.00')}))['n'] == 10

    def test_unserializable_value(self):
        with pytest.raises(TypeError):
            serialize_record({'x': object()})


class TestDirectorySink:
    """Test cases for exporting into a directory."""

    def setup_method(self):
        self.test_dir = tempfile.mkdtemp()
        self.export_dir = Path(self.test_dir) / 'exports'

    def teardown_method(self):
        shutil.rmtree(self.test_dir)

    def test_export_writes_file(self):
        result = export_record(RECORD, DirectorySink(self.export_dir), today=date(2024, 3, 15))

        target = self.export_dir / 'employment-form-2024-03-15.json'
        assert result.success is True
        assert result.message == SUCCESS_MESSAGE
        assert result.location == str(target)
        assert json.loads(target.read_text(encoding='utf-8'))['employerName'] == 'Acme &amp; Co'

    def test_no_temporary_files_left(self):
        export_record(RECORD, DirectorySink(self.export_dir), today=date(2024, 3, 15))
        assert [p.name for p in self.export_dir.iterdir()] == ['employment-form-2024-03-15.json']

    def test_temporary_file_removed_when_delivery_fails(self):
        sink = DirectorySink(self.export_dir)
        with patch('form_engine.exporter.os.replace', side_effect=PermissionError("denied")):
            result = export_record(RECORD, sink, today=date(2024, 3, 15))

        assert result.success is False
        assert result.kind == ExportError.SECURITY
        assert list(self.export_dir.iterdir()) == []


class TestMemorySink:
    """Test cases for in-memory export."""

    def test_payload_kept_and_handle_released(self):
        sink = MemorySink()
        result = export_record(RECORD, sink, today=date(2024, 3, 15))

        assert result.success is True
        assert result.location == 'memory://employment-form-2024-03-15.json'
        assert sink.filename == 'employment-form-2024-03-15.json'
        assert json.loads(sink.payload.decode('utf-8'))['currency'] == 'EUR'
        assert sink.open_handles == 0

    def test_artifact_handle_released_on_error(self):
        sink = MemorySink()
        with pytest.raises(RuntimeError):
            with artifact_handle(sink, 'a.json', b'{}'):
                raise RuntimeError("interrupted")
        assert sink.open_handles == 0


class TestArtifactSink:
    """Test cases for the sink base class."""

    def test_base_class_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            ArtifactSink()

    def test_incomplete_sink_rejected(self):
        class NoRelease(ArtifactSink):
            def acquire(self, filename, payload):
                return filename

            def deliver(self, handle):
                return handle

        with pytest.raises(TypeError):
            NoRelease()


class TestExportErrors:
    """Test cases for export failure classification."""

    def test_permission_error_is_security(self):
        error = classify_export_error(PermissionError("denied"))
        assert error.kind == ExportError.SECURITY
        assert error.message == SECURITY_MESSAGE

    @pytest.mark.parametrize('code', [errno.ENOSPC, getattr(errno, 'EDQUOT', errno.ENOSPC)])
    def test_full_disk_is_quota(self, code):
        error = classify_export_error(OSError(code, "No space left"))
        assert error.kind == ExportError.QUOTA
        assert error.message == QUOTA_MESSAGE

    def test_other_errors(self):
        error = classify_export_error(RuntimeError("broken pipe"))
        assert error.kind == ExportError.OTHER
        assert error.message == "Failed to export the form: broken pipe"

    def test_failures_reported_not_raised(self):
        for raised, kind in [
            (PermissionError("denied"), ExportError.SECURITY),
            (OSError(errno.ENOSPC, "full"), ExportError.QUOTA),
            (ValueError("bad"), ExportError.OTHER),
        ]:
            sink = FailingSink(raised)
            result = export_record(RECORD, sink, today=date(2024, 3, 15))

            assert result.success is False
            assert result.kind == kind
            assert result.filename == 'employment-form-2024-03-15.json'
            assert sink.released == 1
