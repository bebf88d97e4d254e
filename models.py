"""
models.py - Data Models for the Rosetta test agent

This file defines the data structures shared across the agent:

    retry.py       ->  AttemptOutcome (produced by probes)
    expectation.py ->  ExpectedOperation vs Operation -> MismatchReason
    clients.py     ->  NetworkIdentifier, NetworkStatus, MempoolTransaction
    scenario.py    ->  ScenarioStep, ScenarioResult

Design principles:
1. Observed records mirror the Rosetta wire shape and ignore unknown keys, so
   a node that adds fields never breaks the agent.
2. Expectations are partial: a None field means "don't check".
3. Everything is transient, built per scenario run and then discarded.

Schema relationships:
    ExpectedAccount   --used by--> ExpectedOperation.account
    AccountIdentifier --used by--> Operation.account
    Amount            --used by--> Operation.amount
    Operation         --used by--> MempoolTransaction.operations
    SyncStatus        --used by--> NetworkStatus.sync_status
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from errors import AgentError

UINT64_MAX = 2**64 - 1


class AttemptOutcome(str, Enum):
    """Result of one probe invocation inside a retry loop."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class MismatchReason(str, Enum):
    """The first field on which an observed operation disagreed.

    Fields are checked in this order and the first disagreement wins:
    amount -> account (public key, then token id) -> status -> kind.
    """

    # Expected amount present but observed amount missing, unparseable or different.
    AMOUNT = "amount"

    # Expected account present but the observed operation carries no account.
    ACCOUNT = "account"

    # Observed address differs from the expected public key (case-sensitive).
    ACCOUNT_PUBLIC_KEY = "account_public_key"

    # Token id missing from the account metadata, or a different token id.
    ACCOUNT_TOKEN_ID = "account_token_id"

    STATUS = "status"
    KIND = "kind"

    @property
    def label(self) -> str:
        return REASON_LABELS[self]


REASON_LABELS: dict[MismatchReason, str] = {
    MismatchReason.AMOUNT: "Amount",
    MismatchReason.ACCOUNT: "Account",
    MismatchReason.ACCOUNT_PUBLIC_KEY: "AccountPublicKey",
    MismatchReason.ACCOUNT_TOKEN_ID: "AccountTokenId",
    MismatchReason.STATUS: "Status",
    MismatchReason.KIND: "Kind",
}


# -- Expectations --


class ExpectedAccount(BaseModel):
    """Account an expected operation must touch."""

    model_config = ConfigDict(frozen=True)

    public_key: str = Field(
        ...,
        min_length=1,
        description="Base58 public key that must equal the observed address exactly.",
    )
    token_id: int = Field(
        default=1,
        ge=0,
        le=UINT64_MAX,
        description=(
            "Token id as an unsigned 64-bit integer. Compared against the "
            "observed metadata by canonical decimal string. 1 is the default "
            "token of the chain."
        ),
    )


class ExpectedOperation(BaseModel):
    """Partial specification of a ledger operation an observer expects to see.

    Only `status` and `kind` are always compared. `amount` and `account` are
    optional: leaving them as None tells the matcher not to look at the
    corresponding observed fields at all.
    """

    model_config = ConfigDict(frozen=True)

    amount: Optional[int] = Field(
        default=None,
        description="Signed amount in the smallest unit. None = don't check amount.",
    )
    account: Optional[ExpectedAccount] = Field(
        default=None,
        description="Account the operation applies to. None = don't check account.",
    )
    status: str = Field(..., description="Operation status, e.g. 'Pending'.")
    kind: str = Field(
        ...,
        description=(
            "Semantic role of the operation, e.g. 'fee_payer_dec', "
            "'payment_source_dec', 'payment_receiver_inc'."
        ),
    )


# -- Observed Rosetta records --


class _RosettaRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class NetworkIdentifier(_RosettaRecord):
    blockchain: str
    network: str

    def to_wire(self) -> dict[str, Any]:
        return {"blockchain": self.blockchain, "network": self.network}


class SyncStatus(_RosettaRecord):
    stage: Optional[str] = None
    current_index: Optional[int] = None
    target_index: Optional[int] = None
    synced: Optional[bool] = None


class NetworkStatus(_RosettaRecord):
    sync_status: Optional[SyncStatus] = None

    @property
    def sync_stage(self) -> Optional[str]:
        return self.sync_status.stage if self.sync_status else None


class Currency(_RosettaRecord):
    symbol: str
    decimals: int


class Amount(_RosettaRecord):
    value: str = Field(..., description="String-encoded signed integer.")
    currency: Optional[Currency] = None


class AccountIdentifier(_RosettaRecord):
    address: str
    metadata: Optional[dict[str, Any]] = Field(
        default=None,
        description="Free-form metadata; carries the token id as {'token_id': '1'}.",
    )

    @property
    def token_id(self) -> Optional[str]:
        """Token id from metadata, or None when absent or not a string."""
        if not isinstance(self.metadata, dict):
            return None
        value = self.metadata.get("token_id")
        return value if isinstance(value, str) else None


class OperationIdentifier(_RosettaRecord):
    index: int


class Operation(_RosettaRecord):
    """One balance-affecting effect inside a transaction, as Rosetta reports it."""

    operation_identifier: Optional[OperationIdentifier] = None
    kind: str = Field(..., alias="type")
    status: str
    account: Optional[AccountIdentifier] = None
    amount: Optional[Amount] = None

    def show(self) -> str:
        """Compact JSON of the record in its wire shape, for diagnostics."""
        return json.dumps(
            self.model_dump(mode="json", by_alias=True, exclude_none=True),
            separators=(",", ":"),
            sort_keys=True,
        )


class TransactionIdentifier(_RosettaRecord):
    hash: str


class MempoolTransaction(_RosettaRecord):
    transaction_identifier: TransactionIdentifier
    operations: list[Operation] = Field(default_factory=list)


# -- Scenario --


class ScenarioStep(str, Enum):
    """Ordered steps of the new-account payment scenario."""

    DISABLE_STAKING = "disable_staking"
    RESOLVE_NETWORK = "resolve_network"
    WAIT_FOR_SYNC = "wait_for_sync"
    UNLOCK_ACCOUNT = "unlock_account"
    SEND_PAYMENT = "send_payment"
    SETTLE_DELAY = "settle_delay"
    WAIT_FOR_MEMPOOL = "wait_for_mempool"
    FETCH_MEMPOOL_TRANSACTION = "fetch_mempool_transaction"
    VERIFY_OPERATIONS = "verify_operations"
    SUCCESS = "success"


class ScenarioResult(BaseModel):
    """Overall pass/fail of one scenario run.

    Transport, timeout, mismatch and shape failures all arrive here through
    `error`, so the entry point needs a single failure path.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    failed_step: Optional[ScenarioStep] = None
    error: Optional[AgentError] = None
    completed_steps: list[ScenarioStep] = Field(default_factory=list)
    transaction_hash: Optional[str] = None
    duration_s: float = 0.0

    @classmethod
    def success(cls, completed_steps: list[ScenarioStep], **kwargs: Any) -> "ScenarioResult":
        return cls(ok=True, completed_steps=list(completed_steps), **kwargs)

    @classmethod
    def failure(
        cls,
        step: ScenarioStep,
        error: AgentError,
        completed_steps: Optional[list[ScenarioStep]] = None,
        **kwargs: Any,
    ) -> "ScenarioResult":
        return cls(
            ok=False,
            failed_step=step,
            error=error,
            completed_steps=list(completed_steps or []),
            **kwargs,
        )

    @property
    def message(self) -> str:
        """One-line human-readable cause."""
        if self.ok:
            return "scenario passed"
        step = self.failed_step.value if self.failed_step else "unknown"
        detail = self.error.show() if self.error else "unknown error"
        return f"{step}: {detail}"
