import pytest
from fastapi import HTTPException

from formbuilder.core.submission_validation import error_messages, validate_responses, validate_submission_or_400
from tests.helpers import field


FIELDS = [
    field("name", required=True, label="Name"),
    field("mail", type="email"),
    field("age", type="number"),
    field("topics", type="checkbox", required=True, label="Topics", options=["a", "b"]),
]


def test_valid_submission():
    assert validate_responses(FIELDS, {"name": "Ann", "mail": "a@b.co", "age": "42", "topics": ["a"]}) == []


def test_required_fields():
    errors = validate_responses(FIELDS, {"name": "  ", "topics": []})
    assert {e["field"]: e["code"] for e in errors} == {"name": "required", "topics": "required"}
    assert errors[0]["message"] == "Name is required"


def test_optional_fields_may_be_empty():
    assert validate_responses(FIELDS, {"name": "x", "topics": ["b"], "mail": "", "age": None}) == []


def test_type_checks():
    errors = validate_responses(FIELDS, {"name": "x", "topics": "a", "mail": "nope", "age": "abc"})
    codes = {e["field"]: e["code"] for e in errors}
    assert codes == {"mail": "email", "age": "number", "topics": "type"}


def test_numbers_accept_numeric_json_values():
    assert validate_responses(FIELDS, {"name": "x", "topics": ["a"], "age": 3.5}) == []


def test_raises_400_with_error_list():
    with pytest.raises(HTTPException) as exc:
        validate_submission_or_400(FIELDS, {})
    assert exc.value.status_code == 400
    assert exc.value.detail["message"] == "Submission validation failed"
    assert len(exc.value.detail["errors"]) == 2


def test_error_messages_by_field():
    errors = validate_responses(FIELDS, {"mail": "nope", "topics": ["a"]})
    assert error_messages(errors) == {
        "name": "Name is required",
        "mail": "Please enter a valid email address",
    }
