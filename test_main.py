"""
test_main.py - CLI and report tests

Checks for:
- argument parsing and log levels
- exit status mapping
- text and JSON reports

Usage: python test_main.py
"""

from __future__ import annotations

import json
import logging
import os
import sys

# Ensure local imports resolve from project root.
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pytest

import main
from errors import RetryTimeoutError, TransportError
from logging_config import JsonLineFormatter, parse_log_level
from models import ScenarioResult, ScenarioStep
from report import format_report, format_report_json

ALL_STEPS = list(ScenarioStep)


def _success() -> ScenarioResult:
    return ScenarioResult.success(ALL_STEPS, transaction_hash="H1", duration_s=9.25)


def _timeout() -> ScenarioResult:
    return ScenarioResult.failure(
        ScenarioStep.WAIT_FOR_MEMPOOL,
        RetryTimeoutError("Took too long to appear in mempool", attempts=5),
        ALL_STEPS[:6],
        transaction_hash="H1",
        duration_s=12.0,
    )


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _patch_run(monkeypatch: pytest.MonkeyPatch, result: ScenarioResult) -> list:
    seen = []

    async def fake_run(settings):
        seen.append(settings)
        return result

    monkeypatch.setattr(main, "run", fake_run)
    return seen


def test_parse_log_level() -> None:
    assert parse_log_level("Debug") == logging.DEBUG
    assert parse_log_level("warn") == logging.WARNING
    with pytest.raises(ValueError):
        parse_log_level("loud")


def test_json_log_line_survives_quotes_in_message() -> None:
    raw = '{"status":"Applied","type":"fee_payer_dec"}'
    record = logging.LogRecord(
        "expectation", logging.WARNING, __file__, 1, "operation_mismatch | observed=%s", (raw,), None
    )

    line = JsonLineFormatter(datefmt="%H:%M:%S").format(record)

    data = json.loads(line)
    assert data["level"] == "WARNING"
    assert data["module"] == "expectation"
    assert data["message"] == f"operation_mismatch | observed={raw}"


def test_parser_flags() -> None:
    args = main.build_parser().parse_args(
        ["--rosetta-uri", "http://r:3087", "--graphql-uri", "http://g/graphql", "--log-level", "DEBUG", "--log-json"]
    )
    assert args.rosetta_uri == "http://r:3087"
    assert args.graphql_uri == "http://g/graphql"
    assert args.log_level == "debug"
    assert args.log_json is True
    assert args.json is False


def test_success_exits_zero(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    seen = _patch_run(monkeypatch, _success())

    code = main.main(["--rosetta-uri", "http://r:3087", "--graphql-uri", "http://g/graphql"])

    assert code == 0
    assert seen[0].rosetta_uri == "http://r:3087"
    assert "PASSED" in capsys.readouterr().out


def test_failure_exits_one_with_json_report(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    _patch_run(monkeypatch, _timeout())

    code = main.main(["--json"])

    assert code == 1
    report = json.loads(capsys.readouterr().out)
    assert report["status"] == "failed"
    assert report["failed_step"] == "wait_for_mempool"
    assert report["error"] == {"kind": "timeout", "context": "Took too long to appear in mempool", "attempts": 5}


def test_invalid_uri_exits_one(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = _patch_run(monkeypatch, _success())
    assert main.main(["--rosetta-uri", "not-a-uri"]) == 1
    assert seen == []


def test_text_report_marks_failed_step() -> None:
    text = format_report(_timeout())
    assert "FAILED" in text
    assert "[FAIL] Wait for mempool" in text
    assert "[  ok] Settle delay" in text
    assert "[  --] Verify operations" in text
    assert "Took too long to appear in mempool" in text


def test_reports_handle_none_and_transport_detail() -> None:
    assert "ERROR" in format_report(None)
    assert format_report_json(None)["status"] == "error"

    result = ScenarioResult.failure(ScenarioStep.DISABLE_STAKING, TransportError("refused", status_code=502))
    data = format_report_json(result)
    assert data["error"] == {"kind": "transport", "context": "refused", "status_code": 502}
    assert data["completed_steps"] == []
    assert result.message == "disable_staking: transport: refused"


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, "-q"]))
