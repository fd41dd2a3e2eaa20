from __future__ import annotations

import sqlite3

from arcadegate.core.error_reporter import ErrorReporter, ErrorReporterConfig, normalize_exception
from arcadegate.core.errors import NotFoundError
from tests.helpers.log_assertions import assert_secrets_absent, jsonl_rows


def test_normalize_exception_codes():
    assert normalize_exception(sqlite3.OperationalError("locked"), subsystem="licensing", context={}).code == "store_error"
    assert normalize_exception(RuntimeError("x"), subsystem="store", context={}).code == "store_error"
    assert normalize_exception(RuntimeError("x"), subsystem="config", context={}).code == "config_error"
    assert normalize_exception(ValueError("x"), subsystem="admin", context={}).code == "validation_error"
    assert normalize_exception(RuntimeError("x"), subsystem="admin", context={}).code == "internal_error"
    nf = NotFoundError(key="K")
    assert normalize_exception(nf, subsystem="admin", context={}) is nf


def test_errors_written_redacted(tmp_path):
    path = str(tmp_path / "logs" / "errors.jsonl")
    rep = ErrorReporter(path=path)
    err = rep.report_exception(RuntimeError("boom"), trace_id="t1", subsystem="admin", context={"action": "x", "password": "hunter22"})
    assert err.code == "internal_error"
    rows = jsonl_rows(path)
    assert rows[0]["trace_id"] == "t1"
    assert rows[0]["safe_context"]["action"] == "x"
    assert "internal_context" not in rows[0]
    assert_secrets_absent(rows, "hunter22")
    assert rep.tail(5) == rows


def test_tracebacks_only_when_enabled(tmp_path):
    path = str(tmp_path / "errors.jsonl")
    rep = ErrorReporter(path=path, cfg=ErrorReporterConfig(include_tracebacks=True))
    try:
        raise RuntimeError("boom")
    except RuntimeError as e:
        rep.report_exception(e, trace_id="t2", subsystem="licensing")
    assert "RuntimeError" in jsonl_rows(path)[0]["internal_context"]["traceback"]


def test_store_failure_during_login_is_reported(memory_cfg, fs, tmp_path):
    import asyncio

    from arcadegate.core.store.memory import MemoryRecordStore
    from tests.helpers.fakes import FlakyStore, open_app

    async def scenario():
        store = FlakyStore(MemoryRecordStore())
        app = await open_app(memory_cfg, fs, store=store)
        store.fail = True
        assert await app.login("TEST-LICENSE-12345DEMO") is False
        assert app.is_authenticated() is False

    asyncio.run(scenario())
    rows = jsonl_rows(fs.resolve(memory_cfg.logging.errors_path))
    assert rows[-1]["error_code"] == "store_error"
    assert rows[-1]["subsystem"] == "licensing"
    assert_secrets_absent(rows, "TEST-LICENSE-12345DEMO")


def test_license_keys_in_error_context_are_masked(tmp_path):
    path = str(tmp_path / "errors.jsonl")
    rep = ErrorReporter(path=path)
    rep.report_exception(NotFoundError("License not found.", key="ABCDE-FGHIJ-KLMNO-PQRST"), trace_id="t3", subsystem="admin")
    rows = jsonl_rows(path)
    assert rows[0]["error_code"] == "not_found"
    assert rows[0]["safe_context"]["key"] == "ABCDE-***"
    assert_secrets_absent(rows, "ABCDE-FGHIJ-KLMNO-PQRST")
