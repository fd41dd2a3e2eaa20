from __future__ import annotations

import pytest

from arcadegate.core.events import AuthorityEvent, EventBus, EventFamily, EventLogger, redact
from tests.helpers.fakes import RecordingLogger
from tests.helpers.log_assertions import assert_key_masked, jsonl_rows


def test_exact_prefix_and_wildcard_matching():
    bus = EventBus()
    exact, prefix, everything = [], [], []
    bus.subscribe("license.generated", lambda e: exact.append(e.event_type))
    bus.subscribe("license.*", lambda e: prefix.append(e.event_type))
    bus.subscribe("*", lambda e: everything.append(e.event_type))

    bus.publish(AuthorityEvent.of("license.generated"))
    bus.publish(AuthorityEvent.of("license.revoked"))
    bus.publish(AuthorityEvent.of("session.changed"))

    assert exact == ["license.generated"]
    assert prefix == ["license.generated", "license.revoked"]
    assert everything == ["license.generated", "license.revoked", "session.changed"]


def test_unsubscribe_handle():
    bus = EventBus()
    seen = []
    unsubscribe = bus.subscribe("*", lambda e: seen.append(e))
    bus.publish(AuthorityEvent.of("admin.accounts_reloaded"))
    unsubscribe()
    unsubscribe()
    bus.publish(AuthorityEvent.of("admin.accounts_reloaded"))
    assert len(seen) == 1
    assert bus.get_stats()["subscribers"] == 0


def test_handler_failure_is_isolated():
    log = RecordingLogger()
    bus = EventBus(logger=log)
    seen = []

    def boom(_e):  # noqa: ANN001
        raise RuntimeError("boom")

    bus.subscribe("*", boom, priority=1)
    bus.subscribe("*", lambda e: seen.append(e), priority=2)
    assert bus.publish(AuthorityEvent.of("session.changed")) == 1
    assert len(seen) == 1
    assert bus.get_stats()["handler_errors_total"] == 1
    assert log.messages("error")


def test_family_comes_from_event_type():
    assert AuthorityEvent.of("license.revoked").family is EventFamily.license
    assert AuthorityEvent.of("session.restore_failed").family is EventFamily.session
    for bad in ["", "license", "license.", "jobs.started"]:
        with pytest.raises(ValueError):
            AuthorityEvent.of(bad)


def test_payload_credentials_dropped_and_keys_masked():
    ev = AuthorityEvent.of(
        "license.generated",
        key="AAAAA-BBBBB-CCCCC-DDDDD",
        note="issued ABCDE-FGHIJ-KLMNO-PQRST",
        keys=["TEST-LICENSE-12345DEMO", "ADMIN-ROOT-PERMANENT"],
        password="pw",
        nested={"token": "t"},
        days=30,
        reason="login",
    )
    assert ev.payload["key"] == "AAAAA-***"
    assert ev.payload["keys"] == ["TEST-***", "ADMIN-***"]
    assert ev.payload["password"] == "***REDACTED***"
    assert ev.payload["nested"]["token"] == "***REDACTED***"
    assert ev.payload["days"] == 30
    assert ev.payload["reason"] == "login"
    # a bare key is masked only when the whole value is key-shaped
    assert ev.payload["note"] == "issued ABCDE-FGHIJ-KLMNO-PQRST"


def test_redact_leaves_ordinary_values_alone():
    assert redact({"username": "ops-lead", "games": ["snake", "pong"], "count": 2}) == {
        "username": "ops-lead",
        "games": ["snake", "pong"],
        "count": 2,
    }


def test_payload_must_be_json_serializable():
    with pytest.raises(ValueError):
        AuthorityEvent.of("license.generated", obj=object())


def test_event_logger_writes_jsonl(tmp_path):
    path = str(tmp_path / "logs" / "events.jsonl")
    bus = EventBus()
    bus.subscribe("*", EventLogger(path=path))
    bus.publish(AuthorityEvent.of("license.generated", trace_id="t-1", key="AAAAA-BBBBB-CCCCC-DDDDD"))
    rows = jsonl_rows(path)
    assert rows[0]["event"] == "license.generated"
    assert rows[0]["family"] == "license"
    assert rows[0]["trace_id"] == "t-1"
    assert_key_masked(rows, "AAAAA-BBBBB-CCCCC-DDDDD")
