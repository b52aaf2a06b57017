"""
Unit tests for model_builder module.
"""

from datetime import date, timedelta
from typing import Optional, Tuple

import pytest
from pydantic import BaseModel

from form_engine.model_builder import (
    EmploymentRecord,
    create_model_from_schema,
    cross_field_rule,
    get_cross_field_rules,
    get_record_model,
    register_record_model,
    to_date,
)
from form_engine.schema_loader import parse_schema
from form_engine.validation import validate_form


def build_schema(schema_id="profile-form"):
    return parse_schema({
        "id": schema_id,
        "sections": [{
            "id": "main",
            "groups": [{
                "fields": [
                    {"name": "fullName", "type": "text", "label": "Full name", "required": True,
                     "maxLength": 20, "pattern": "^[A-Za-z ]+$"},
                    {"name": "age", "type": "number", "label": "Age", "min": 18, "max": 99},
                    {"name": "salary", "type": "currency", "label": "Salary", "required": True, "min": 1},
                    {"name": "birthday", "type": "date", "label": "Birthday", "disableFuture": True},
                    {"name": "joined", "type": "date", "label": "Joined", "minDate": "2000-01-01"},
                    {"name": "bio", "type": "textarea", "label": "Bio", "maxLength": 10},
                    {"name": "team", "type": "select", "label": "Team", "required": True,
                     "options": [{"value": "a", "label": "A"}, {"value": "b", "label": "B"}]},
                ]
            }]
        }]
    })


def valid_values(**overrides):
    values = {
        'fullName': 'Ada Lovelace',
        'age': 36,
        'salary': 1000,
        'birthday': '1990-12-10',
        'joined': None,
        'bio': '',
        'team': 'a',
    }
    values.update(overrides)
    return values


class TestToDate:
    """Test cases for to_date."""

    def test_accepts_dates_datetimes_and_strings(self):
        from datetime import datetime
        assert to_date(date(2024, 1, 2)) == date(2024, 1, 2)
        assert to_date(datetime(2024, 1, 2, 15, 30)) == date(2024, 1, 2)
        assert to_date('2024-01-02') == date(2024, 1, 2)

    def test_empty_values(self):
        assert to_date(None) is None
        assert to_date('') is None

    def test_rejects_other_types(self):
        with pytest.raises(ValueError):
            to_date(20240102)


class TestCreateModelFromSchema:
    """Test cases for dynamically built record models."""

    def setup_method(self):
        self.model = create_model_from_schema(build_schema())

    def test_model_name_from_schema_id(self):
        assert self.model.__name__ == 'ProfileFormRecord'

    def test_valid_values(self):
        result = validate_form(valid_values(), record_model=self.model)
        assert result.success is True
        assert result.record.birthday == date(1990, 12, 10)
        assert result.record.bio is None

    def test_text_constraints(self):
        assert 'fullName' in validate_form(valid_values(fullName=''), record_model=self.model).errors
        assert 'fullName' in validate_form(valid_values(fullName='x' * 21), record_model=self.model).errors
        assert 'fullName' in validate_form(valid_values(fullName='R2D2'), record_model=self.model).errors

    def test_number_bounds(self):
        assert 'age' in validate_form(valid_values(age=17), record_model=self.model).errors
        assert 'age' in validate_form(valid_values(age=100), record_model=self.model).errors
        assert validate_form(valid_values(age=None), record_model=self.model).success is True

    def test_required_currency(self):
        assert 'salary' in validate_form(valid_values(salary=None), record_model=self.model).errors
        assert 'salary' in validate_form(valid_values(salary=0), record_model=self.model).errors

    def test_date_rules(self):
        future = date.today() + timedelta(days=2)
        result = validate_form(valid_values(birthday=future), record_model=self.model)
        assert result.error_for('birthday') == "Date cannot be in the future"

        result = validate_form(valid_values(joined=date(1999, 12, 31)), record_model=self.model)
        assert result.error_for('joined') == "Date must be on or after 2000-01-01"

        result = validate_form(valid_values(birthday='someday'), record_model=self.model)
        assert result.error_for('birthday') == "Please enter a valid date"

    def test_textarea_max_length(self):
        assert 'bio' in validate_form(valid_values(bio='x' * 11), record_model=self.model).errors

    def test_select_choices(self):
        result = validate_form(valid_values(team='z'), record_model=self.model)
        assert result.error_for('team') == "Value must be one of: a, b"


class TestRecordModelRegistry:
    """Test cases for record model lookup and cross-field rules."""

    def test_employment_form_uses_handwritten_model(self):
        assert get_record_model(build_schema("employment-form")) is EmploymentRecord

    def test_unregistered_schema_gets_dynamic_model(self):
        model = get_record_model(build_schema("other-form"))
        assert model is not EmploymentRecord
        assert issubclass(model, BaseModel)

    def test_registered_model_and_rule(self):
        class WindowRecord(BaseModel):
            opens: date
            closes: date

        @cross_field_rule(WindowRecord)
        def closes_after_opens(record: WindowRecord) -> Optional[Tuple[str, str]]:
            if record.closes <= record.opens:
                return 'closes', "Must close after opening"
            return None

        register_record_model('window-form', WindowRecord)

        assert get_record_model(build_schema('window-form')) is WindowRecord
        assert get_cross_field_rules(WindowRecord) == [closes_after_opens]

        result = validate_form(
            {'opens': date(2024, 1, 2), 'closes': date(2024, 1, 1)},
            record_model=WindowRecord
        )
        assert result.errors == {'closes': "Must close after opening"}

    def test_employment_rules_registered(self):
        names = [rule.__name__ for rule in get_cross_field_rules(EmploymentRecord)]
        assert names == ['end_date_after_start']

    def test_export_keys_use_form_field_names(self):
        record = EmploymentRecord.model_validate({
            'employerName': 'Acme',
            'currency': 'EUR',
            'annualGrossIncome': 1000,
            'employmentStartDate': '2020-01-01',
        })

        assert record.model_dump(by_alias=True, exclude_none=True) == {
            'employerName': 'Acme',
            'currency': 'EUR',
            'annualGrossIncome': 1000,
            'employmentStartDate': date(2020, 1, 1),
        }
