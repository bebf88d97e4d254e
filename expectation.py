"""
expectation.py - Structural comparison of observed ledger operations.

`check_operation` compares one observed Rosetta operation against a partial
`ExpectedOperation` and names the FIRST field that disagrees:

    amount -> account (public key, then token id) -> status -> kind

Only one reason is ever reported per comparison, so a failure always points
at a single root cause.

`check_operations` pairs an expected list with an observed list element-wise
and turns the first failure into an `AgentError`.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from errors import AgentError, MismatchError, ShapeError
from logging_config import get_logger
from models import ExpectedOperation, MismatchReason, Operation

logger = get_logger(__name__)

_INTEGER_RE = re.compile(r"^-?\d+$")


def parse_amount(value: Optional[str]) -> Optional[int]:
    """Parse a Rosetta amount string; None if missing or not a plain integer."""
    if value is None:
        return None
    text = str(value).strip()
    if not _INTEGER_RE.match(text):
        return None
    return int(text)


def check_operation(expected: ExpectedOperation, observed: Operation) -> Optional[MismatchReason]:
    """Return None when `observed` satisfies `expected`, else the first mismatch."""
    if expected.amount is not None:
        observed_amount = parse_amount(observed.amount.value) if observed.amount else None
        if observed_amount is None or observed_amount != expected.amount:
            return MismatchReason.AMOUNT

    if expected.account is not None:
        account = observed.account
        if account is None:
            return MismatchReason.ACCOUNT
        if account.address != expected.account.public_key:
            return MismatchReason.ACCOUNT_PUBLIC_KEY
        # Checked even when the key matched: a missing token id is a failure.
        token_id = account.token_id
        if token_id is None or token_id != str(expected.account.token_id):
            return MismatchReason.ACCOUNT_TOKEN_ID

    if observed.status != expected.status:
        return MismatchReason.STATUS

    if observed.kind != expected.kind:
        return MismatchReason.KIND

    return None


def check_operations(
    expected: Sequence[ExpectedOperation],
    observed: Sequence[Operation],
) -> Optional[AgentError]:
    """Compare two operation lists pairwise; None when every pair matches."""
    if len(expected) != len(observed):
        logger.warning(
            "operations_shape_mismatch | expected=%s | observed=%s",
            len(expected),
            len(observed),
        )
        return ShapeError(f"expected {len(expected)} operations, observed {len(observed)}")

    for index, (want, got) in enumerate(zip(expected, observed)):
        reason = check_operation(want, got)
        if reason is not None:
            logger.warning(
                "operation_mismatch | index=%s | reason=%s | expected_kind=%s | observed=%s",
                index,
                reason.label,
                want.kind,
                got.show(),
            )
            return MismatchError(reason, got, index=index)
        logger.debug("operation_match | index=%s | kind=%s", index, got.kind)

    return None
