import pytest

from netpulse.alerts import ALERT_CAPACITY, INFO, WARNING, AlertLog, make_alert


def test_alert_id_is_deterministic():
    first = make_alert(INFO, "Capture status", "SIMULATE: ok", ts=1_000)
    second = make_alert(INFO, "Capture status", "SIMULATE: ok", ts=1_000)
    other = make_alert(INFO, "Capture status", "SIMULATE: ok", ts=1_001)

    assert first.id == second.id
    assert len(first.id) == 12
    assert first.id != other.id


def test_unknown_severity_is_rejected():
    with pytest.raises(ValueError):
        make_alert("debug", "nope")


def test_alert_dict_omits_missing_detail():
    assert "detail" not in make_alert(WARNING, "No detail", ts=1).to_dict()
    assert make_alert(WARNING, "Detail", "x", ts=1).to_dict()["detail"] == "x"


def test_duplicate_alert_is_ignored():
    changes = []
    log = AlertLog(on_change=changes.append)
    alert = make_alert(INFO, "Hello", ts=5)

    assert log.push(alert) is True
    assert log.push(make_alert(INFO, "Hello", ts=5)) is False
    assert len(log) == 1
    assert len(changes) == 1


def test_log_is_newest_first_and_capped():
    log = AlertLog()
    for ts in range(ALERT_CAPACITY + 1):
        log.push(make_alert(INFO, "Tick", str(ts), ts=ts))

    items = log.items()
    assert len(items) == ALERT_CAPACITY
    assert items[0].ts == ALERT_CAPACITY
    assert items[-1].ts == 1


def test_on_change_receives_current_list():
    received = []
    log = AlertLog(capacity=3, on_change=received.append)
    log.push(make_alert(INFO, "a", ts=1))
    log.push(make_alert(WARNING, "b", ts=2))

    assert [alert.title for alert in received[-1]] == ["b", "a"]
    assert log.to_list()[0]["severity"] == WARNING
