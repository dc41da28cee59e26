import json

from taskapi.model import Task


def test_to_dict_wire_form():
    task = Task(id="test-id-123", name="Test Task", status=0)
    assert json.dumps(task.to_dict(), separators=(",", ":")) == (
        '{"id":"test-id-123","name":"Test Task","status":0}'
    )


def test_to_dict_key_order():
    task = Task(id="1", name="Task 1", status=1)
    assert list(task.to_dict()) == ["id", "name", "status"]


def test_defaults_are_empty():
    task = Task()
    assert task.to_dict() == {"id": "", "name": "", "status": 0}


def test_round_trip_through_dict():
    task = Task(id="2", name="Task 2", status=1)
    assert Task(**task.to_dict()) == task


def test_equality_by_fields():
    assert Task(id="1", name="a", status=0) == Task(id="1", name="a", status=0)
    assert not Task(id="1", name="a", status=0) == Task(id="1", name="a", status=1)