"""
report.py - Human-readable and JSON-ready scenario reports.

This module converts a `ScenarioResult` into:
- terminal-friendly text output for CLI usage
- machine-friendly dictionary output for CI logs and storage
"""

from __future__ import annotations

from logging_config import get_logger
from models import ScenarioResult, ScenarioStep

logger = get_logger(__name__)

STEP_NAMES: dict[ScenarioStep, str] = {
    ScenarioStep.DISABLE_STAKING: "Disable staking",
    ScenarioStep.RESOLVE_NETWORK: "Resolve network",
    ScenarioStep.WAIT_FOR_SYNC: "Wait for sync",
    ScenarioStep.UNLOCK_ACCOUNT: "Unlock account",
    ScenarioStep.SEND_PAYMENT: "Send payment",
    ScenarioStep.SETTLE_DELAY: "Settle delay",
    ScenarioStep.WAIT_FOR_MEMPOOL: "Wait for mempool",
    ScenarioStep.FETCH_MEMPOOL_TRANSACTION: "Fetch mempool transaction",
    ScenarioStep.VERIFY_OPERATIONS: "Verify operations",
    ScenarioStep.SUCCESS: "Success",
}

OUTPUT_WIDTH = 56
SEPARATOR = "=" * OUTPUT_WIDTH


def format_report(result: ScenarioResult | None) -> str:
    """Format a ScenarioResult into a clean, human-readable text block."""
    if result is None:
        logger.error("report_input_error | result_none=True | fallback=error_block")
        return "\n" + SEPARATOR + "\n" + "  ERROR: No scenario result available\n" + SEPARATOR + "\n"

    header = "PASSED" if result.ok else "FAILED"
    lines: list[str] = ["", SEPARATOR, f"  New-account payment - {header}", SEPARATOR, ""]

    for step in ScenarioStep:
        if step in result.completed_steps:
            mark = "ok"
        elif step == result.failed_step:
            mark = "FAIL"
        else:
            mark = "--"
        lines.append(f"  [{mark:>4}] {STEP_NAMES[step]}")

    lines.append("")
    if result.transaction_hash:
        lines.append(f"  Transaction:  {result.transaction_hash}")
    lines.append(f"  Duration:     {result.duration_s:.1f}s")

    if not result.ok and result.error is not None:
        lines.append("")
        lines.append(f"  Failed step:  {STEP_NAMES.get(result.failed_step, 'unknown')}")
        lines.append(f"  Error kind:   {result.error.kind.value}")
        lines.append(f"  Reason:       {result.error.context}")

    lines.append(SEPARATOR)
    return "\n".join(lines) + "\n"


def format_report_json(result: ScenarioResult | None) -> dict:
    """Format a ScenarioResult into a JSON-serializable dict."""
    if result is None:
        return {"status": "error", "error": {"kind": "unknown", "context": "No scenario result available"}}

    return {
        "status": "passed" if result.ok else "failed",
        "failed_step": result.failed_step.value if result.failed_step else None,
        "completed_steps": [step.value for step in result.completed_steps],
        "transaction_hash": result.transaction_hash,
        "duration_s": round(result.duration_s, 3),
        "error": result.error.to_dict() if result.error is not None else None,
    }
