"""
scenario.py - The new-account payment scenario.

Pokes the node through GraphQL, then peeks at Rosetta until the effect shows
up, then checks the effect field by field. The scenario is strictly linear
and stops at the first failing step:

     1. disable staking           (GraphQL)   so payments stay in the mempool
     2. resolve network           (Rosetta)   identifier for every later query
     3. wait for sync             (poll)      sync stage == "Synced"
     4. unlock sender account     (GraphQL)
     5. send payment              (GraphQL)   -> transaction hash
     6. settle delay              (flat wait)
     7. wait for mempool          (poll)      hash listed in /mempool
     8. fetch mempool transaction (Rosetta)
     9. verify operations         (matcher)   fee payer, source, receiver
    10. success
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

import httpx

from clients import GraphQLClient, RosettaClient
from errors import AgentError, ShapeError
from expectation import check_operations
from logging_config import get_logger
from models import (
    AttemptOutcome,
    ExpectedAccount,
    ExpectedOperation,
    NetworkIdentifier,
    ScenarioResult,
    ScenarioStep,
)
from retry import Sleep, keep_trying, wait
from settings import AgentSettings

logger = get_logger(__name__)

SYNCED_STAGE = "Synced"
SYNC_TIMEOUT_LABEL = "Took too long to sync"
MEMPOOL_TIMEOUT_LABEL = "Took too long to appear in mempool"

STEP_COUNT = len(ScenarioStep) - 1


def expected_payment_operations(settings: AgentSettings) -> list[ExpectedOperation]:
    """Operations a pending payment must produce, in Rosetta's order."""
    sender = ExpectedAccount(public_key=settings.sender_public_key, token_id=settings.token_id)
    receiver = ExpectedAccount(public_key=settings.receiver_public_key, token_id=settings.token_id)
    status = settings.expected_status
    return [
        ExpectedOperation(amount=-settings.fee, account=sender, status=status, kind="fee_payer_dec"),
        ExpectedOperation(amount=-settings.amount, account=sender, status=status, kind="payment_source_dec"),
        ExpectedOperation(amount=settings.amount, account=receiver, status=status, kind="payment_receiver_inc"),
    ]


class ScenarioRunner:
    """Runs the payment scenario once against a pair of clients."""

    def __init__(
        self,
        graphql: GraphQLClient,
        rosetta: RosettaClient,
        settings: AgentSettings,
        *,
        log: Optional[logging.Logger] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.graphql = graphql
        self.rosetta = rosetta
        self.settings = settings
        self.log = log or logger
        self.sleep = sleep
        self.step = ScenarioStep.DISABLE_STAKING
        self.completed: list[ScenarioStep] = []
        self.transaction_hash: Optional[str] = None
        self._started = 0.0
        self._step_started = 0.0

    def _enter(self, step: ScenarioStep) -> None:
        self.step = step
        self._step_started = time.time()
        index = list(ScenarioStep).index(step) + 1
        self.log.info("scenario_step | step=%s/%s | name=%s | status=start", index, STEP_COUNT, step.value)

    def _complete(self) -> None:
        self.completed.append(self.step)
        self.log.info(
            "scenario_step | name=%s | status=complete | duration_s=%.2f",
            self.step.value,
            time.time() - self._step_started,
        )

    def _failure(self, error: AgentError) -> ScenarioResult:
        self.log.error(
            "scenario_failed | step=%s | kind=%s | context=%s",
            self.step.value,
            error.kind.value,
            error.context,
        )
        return ScenarioResult.failure(
            self.step,
            error,
            self.completed,
            transaction_hash=self.transaction_hash,
            duration_s=time.time() - self._started,
        )

    async def _sync_probe(self, network: NetworkIdentifier) -> AttemptOutcome:
        try:
            status = await self.rosetta.network_status(network)
        except AgentError as exc:
            self.log.debug("sync_probe | outcome=failed | error=%s", exc.show())
            return AttemptOutcome.FAILED
        self.log.debug("sync_probe | stage=%s", status.sync_stage)
        return AttemptOutcome.SUCCEEDED if status.sync_stage == SYNCED_STAGE else AttemptOutcome.FAILED

    async def _mempool_probe(self, network: NetworkIdentifier, transaction_hash: str) -> AttemptOutcome:
        try:
            hashes = await self.rosetta.mempool(network)
        except AgentError as exc:
            self.log.debug("mempool_probe | outcome=failed | error=%s", exc.show())
            return AttemptOutcome.FAILED
        self.log.debug("mempool_probe | size=%s | found=%s", len(hashes), transaction_hash in hashes)
        return AttemptOutcome.SUCCEEDED if transaction_hash in hashes else AttemptOutcome.FAILED

    async def run(self) -> ScenarioResult:
        settings = self.settings
        self.step = ScenarioStep.DISABLE_STAKING
        self.completed = []
        self.transaction_hash = None
        self._started = time.time()
        try:
            self._enter(ScenarioStep.DISABLE_STAKING)
            await self.graphql.disable_staking()
            self._complete()

            self._enter(ScenarioStep.RESOLVE_NETWORK)
            networks = await self.rosetta.list_networks()
            if not networks:
                return self._failure(ShapeError("/network/list returned no networks"))
            network = networks[0]
            self.log.info("network_resolved | blockchain=%s | network=%s", network.blockchain, network.network)
            self._complete()

            self._enter(ScenarioStep.WAIT_FOR_SYNC)
            policy = settings.sync_policy
            timeout = await keep_trying(
                lambda: self._sync_probe(network),
                retry_count=policy.attempts,
                initial_delay=policy.initial_delay_s,
                each_delay=policy.each_delay_s,
                failure_reason=SYNC_TIMEOUT_LABEL,
                log=self.log,
                sleep=self.sleep,
            )
            if timeout is not None:
                return self._failure(timeout)
            self._complete()

            self._enter(ScenarioStep.UNLOCK_ACCOUNT)
            await self.graphql.unlock_account(settings.sender_public_key, settings.sender_password)
            self._complete()

            self._enter(ScenarioStep.SEND_PAYMENT)
            self.transaction_hash = await self.graphql.send_payment(
                sender=settings.sender_public_key,
                receiver=settings.receiver_public_key,
                amount=settings.amount,
                fee=settings.fee,
            )
            self.log.info("payment_sent | hash=%s | amount=%s | fee=%s", self.transaction_hash, settings.amount, settings.fee)
            self._complete()

            self._enter(ScenarioStep.SETTLE_DELAY)
            await wait(settings.settle_delay_s, sleep=self.sleep)
            self._complete()

            self._enter(ScenarioStep.WAIT_FOR_MEMPOOL)
            policy = settings.mempool_policy
            transaction_hash = self.transaction_hash
            timeout = await keep_trying(
                lambda: self._mempool_probe(network, transaction_hash),
                retry_count=policy.attempts,
                initial_delay=policy.initial_delay_s,
                each_delay=policy.each_delay_s,
                failure_reason=MEMPOOL_TIMEOUT_LABEL,
                log=self.log,
                sleep=self.sleep,
            )
            if timeout is not None:
                return self._failure(timeout)
            self._complete()

            self._enter(ScenarioStep.FETCH_MEMPOOL_TRANSACTION)
            transaction = await self.rosetta.mempool_transaction(network, transaction_hash)
            self._complete()

            self._enter(ScenarioStep.VERIFY_OPERATIONS)
            mismatch = check_operations(expected_payment_operations(settings), transaction.operations)
            if mismatch is not None:
                return self._failure(mismatch)
            self._complete()
        except AgentError as exc:
            return self._failure(exc)

        self.step = ScenarioStep.SUCCESS
        self.completed.append(ScenarioStep.SUCCESS)
        duration = time.time() - self._started
        self.log.info("scenario_complete | hash=%s | duration_s=%.2f", self.transaction_hash, duration)
        return ScenarioResult.success(
            self.completed,
            transaction_hash=self.transaction_hash,
            duration_s=duration,
        )


async def check_new_account_payment(
    graphql: GraphQLClient,
    rosetta: RosettaClient,
    settings: AgentSettings,
    *,
    log: Optional[logging.Logger] = None,
    sleep: Sleep = asyncio.sleep,
) -> ScenarioResult:
    """Run the payment scenario with already-built clients."""
    return await ScenarioRunner(graphql, rosetta, settings, log=log, sleep=sleep).run()


async def run(
    settings: AgentSettings,
    *,
    log: Optional[logging.Logger] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep: Sleep = asyncio.sleep,
) -> ScenarioResult:
    """Build both clients from `settings`, run the scenario, close the clients."""
    log = log or logger
    async with GraphQLClient(
        settings.graphql_uri, timeout=settings.http_timeout_s, transport=transport
    ) as graphql, RosettaClient(
        settings.rosetta_uri, timeout=settings.http_timeout_s, transport=transport
    ) as rosetta:
        result = await check_new_account_payment(graphql, rosetta, settings, log=log, sleep=sleep)

    if result.ok:
        log.info("Finished running test-agent")
    return result
