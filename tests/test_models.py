import pytest

from alarm_delivery.models import DEFAULT_TASK_TITLE, AlarmRequest


def test_from_dict_reads_host_keys():
    request = AlarmRequest.from_dict(
        {"taskId": "t1", "taskTitle": "Pay bills", "notificationId": "42", "triggerTimeMillis": 5000}
    )
    assert request == AlarmRequest("t1", "Pay bills", 42, 5000, False)


def test_from_dict_defaults():
    request = AlarmRequest.from_dict({})
    assert request.task_id == ""
    assert request.task_title == DEFAULT_TASK_TITLE
    assert request.notification_id == 0


def test_stored_form_loads_back():
    request = AlarmRequest("t1", "Pay bills", 42, 5000, True)
    assert AlarmRequest.from_dict(request.to_dict()) == request


def test_non_integer_ids_are_rejected():
    with pytest.raises(ValueError):
        AlarmRequest.from_dict({"notificationId": "forty-two"})
