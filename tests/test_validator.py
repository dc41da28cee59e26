import json

import pytest

from taskapi.validator import ValidationError, validate_task_request


def test_valid_request_returns_task_without_id():
    task = validate_task_request(json.dumps({"name": "Learn", "status": 1}))
    assert task.name == "Learn"
    assert task.status == 1
    assert task.id == ""


def test_bytes_body_accepted():
    task = validate_task_request(b'{"name": "Bytes task", "status": 0}')
    assert task.name == "Bytes task"
    assert task.status == 0


def test_float_status_becomes_int():
    task = validate_task_request('{"name": "x", "status": 1.0}')
    assert task.status == 1
    assert isinstance(task.status, int)


def test_trailing_data_after_object_is_ignored():
    task = validate_task_request('{"name": "first", "status": 0} trailing')
    assert task.name == "first"


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"status": 0}, "name is required"),
        ({"name": "Test Task"}, "status is required"),
        ({"name": 123, "status": 1}, "name must be a string"),
        ({"name": None, "status": 1}, "name must be a string"),
        ({"name": "", "status": 0}, "name cannot be empty"),
        ({"name": "   ", "status": 0}, "name cannot be empty"),
        ({"name": "Test Task", "status": "1"}, "status must be a number"),
        ({"name": "Test Task", "status": True}, "status must be a number"),
        ({"name": "Test Task", "status": -1}, "status must be 0 or 1"),
        ({"name": "Test Task", "status": 2}, "status must be 0 or 1"),
    ],
)
def test_invalid_fields(payload, message):
    with pytest.raises(ValidationError) as info:
        validate_task_request(json.dumps(payload))
    assert str(info.value) == message


def test_name_checked_before_status():
    with pytest.raises(ValidationError) as info:
        validate_task_request("{}")
    assert str(info.value) == "name is required"


@pytest.mark.parametrize("body", ["{invalid json}", "", "   ", "[1, 2]", '"text"', "NaN"])
def test_invalid_json(body):
    with pytest.raises(ValidationError) as info:
        validate_task_request(body)
    assert str(info.value).startswith("invalid JSON")


def test_null_body_reports_missing_name():
    with pytest.raises(ValidationError) as info:
        validate_task_request("null")
    assert str(info.value) == "name is required"


def test_validation_error_is_value_error():
    with pytest.raises(ValueError):
        validate_task_request('{"name": "x"}')