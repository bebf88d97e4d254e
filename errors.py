"""
errors.py - Failure taxonomy for the test agent.

Every way a scenario can fail is one of four kinds:

    TRANSPORT  - an external call failed (HTTP error, non-2xx, GraphQL errors)
    TIMEOUT    - a polling step used up its attempt budget
    MISMATCH   - an observed ledger operation differs from the expectation
    SHAPE      - a response did not have the shape the agent relies on

Clients raise these errors. The retry loop and the matcher hand them back as
values, and the scenario funnels all of them into one `ScenarioResult`.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from models import MismatchReason, Operation


class ErrorKind(str, Enum):
    """Closed set of failure kinds reported by the agent."""

    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    MISMATCH = "mismatch"
    SHAPE = "shape"


class AgentError(Exception):
    """Base error: a kind tag plus a free-form context string."""

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(self, context: str) -> None:
        super().__init__(context)
        self.context = context

    def show(self) -> str:
        return f"{self.kind.value}: {self.context}"

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "context": self.context}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.context!r})"


class TransportError(AgentError):
    """An external call failed before producing a usable response."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, context: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(context)
        self.status_code = status_code

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["status_code"] = self.status_code
        return data


class RetryTimeoutError(AgentError):
    """A bounded polling loop ran out of attempts."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, label: str, *, attempts: int) -> None:
        super().__init__(label)
        self.label = label
        self.attempts = attempts

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["attempts"] = self.attempts
        return data


class MismatchError(AgentError):
    """An observed operation failed its expectation on one specific field."""

    kind = ErrorKind.MISMATCH

    def __init__(self, reason: "MismatchReason", operation: "Operation", *, index: int) -> None:
        super().__init__(
            f"Unexpected operations in mempool reason: {reason.label}, raw: {operation.show()}"
        )
        self.reason = reason
        self.operation = operation
        self.index = index

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["reason"] = self.reason.value
        data["index"] = self.index
        return data


class ShapeError(AgentError):
    """A response was missing something the agent depends on."""

    kind = ErrorKind.SHAPE
