"""
Broadcast Racer - submits one transaction to every endpoint at once.

The race resolves on the first endpoint that accepts. Losing submissions are
detached rather than cancelled: they keep running, their results are logged,
and drain() waits for them before the endpoints are closed.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Set

import structlog

from blaster.core.outcome import BroadcastOutcome, OutcomeStatus
from blaster.node.interface import (
    NodeInterface,
    NodeConnectionError,
    TransactionSubmitError,
)
from blaster.tx.builder import SignedTransaction

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    """Result of submitting to a single endpoint."""
    endpoint: str
    tx_hash: Optional[str] = None
    error: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.tx_hash is not None


class BroadcastRacer:
    """
    Races submissions of a signed transaction across an endpoint pool.

    Usage:
        ```python
        racer = BroadcastRacer(submit_timeout=5.0)
        outcome = await racer.race(signed_tx, endpoints)
        ...
        await racer.drain(timeout=10.0)
        ```
    """

    def __init__(self, submit_timeout: float = 5.0):
        """
        Initialize the racer.

        Args:
            submit_timeout: Upper bound in seconds for one endpoint submission
        """
        if submit_timeout <= 0:
            raise ValueError("submit_timeout must be positive")

        self.submit_timeout = submit_timeout
        self._detached: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        """Number of detached submissions still running."""
        return len(self._detached)

    async def race(
        self,
        tx: SignedTransaction,
        endpoints: Sequence[NodeInterface],
    ) -> BroadcastOutcome:
        """
        Submit to every endpoint and resolve on the first acceptance.

        Args:
            tx: Signed transaction
            endpoints: Endpoint pool

        Returns:
            SUCCESS outcome with the winner's hash, or FAILED when every
            endpoint rejected or timed out
        """
        if not endpoints:
            raise ValueError("endpoint pool is empty")

        pending = {self._spawn(tx, node) for node in endpoints}
        errors: Dict[str, str] = {}

        while pending:
            try:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            except asyncio.CancelledError:
                # abandoned race, stop its submissions
                for task in pending:
                    task.cancel()
                raise

            for task in done:
                result: SubmissionResult = task.result()

                if result.accepted:
                    for loser in pending:
                        self._detach(loser, tx)

                    logger.info(
                        "broadcast_accepted",
                        address=tx.sender,
                        nonce=tx.sequence,
                        tx_hash=result.tx_hash,
                        endpoint=result.endpoint,
                        detached=len(pending),
                    )
                    return BroadcastOutcome(
                        sender=tx.sender,
                        sequence=tx.sequence,
                        status=OutcomeStatus.SUCCESS,
                        tx_hash=result.tx_hash,
                        endpoint=result.endpoint,
                    )

                errors[result.endpoint] = result.error or "rejected"

        logger.warning(
            "broadcast_failed",
            address=tx.sender,
            nonce=tx.sequence,
            errors=errors,
        )
        return BroadcastOutcome(
            sender=tx.sender,
            sequence=tx.sequence,
            status=OutcomeStatus.FAILED,
            errors=errors,
        )

    def dispatch(
        self,
        tx: SignedTransaction,
        endpoints: Sequence[NodeInterface],
    ) -> BroadcastOutcome:
        """
        Fire the transaction at every endpoint without waiting for any answer.

        Returns:
            DISPATCHED outcome carrying the locally computed hash
        """
        if not endpoints:
            raise ValueError("endpoint pool is empty")

        for node in endpoints:
            self._detach(self._spawn(tx, node), tx)

        logger.info("broadcast_dispatched", address=tx.sender, nonce=tx.sequence, endpoints=len(endpoints))
        return BroadcastOutcome(
            sender=tx.sender,
            sequence=tx.sequence,
            status=OutcomeStatus.DISPATCHED,
            tx_hash=tx.tx_hash,
        )

    async def drain(self, timeout: Optional[float] = None) -> int:
        """
        Wait for detached submissions, cancelling any still running at the deadline.

        Returns:
            Number of submissions that had to be cancelled
        """
        if not self._detached:
            return 0

        _, still_running = await asyncio.wait(set(self._detached), timeout=timeout)

        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning("detached_submissions_cancelled", count=len(still_running))

        return len(still_running)

    def _spawn(self, tx: SignedTransaction, node: NodeInterface) -> asyncio.Task:
        return asyncio.create_task(
            self._submit(tx, node),
            name=f"submit:{tx.sender}:{tx.sequence}:{node.url}",
        )

    def _detach(self, task: asyncio.Task, tx: SignedTransaction) -> None:
        self._detached.add(task)

        def _on_done(finished: asyncio.Task) -> None:
            self._detached.discard(finished)
            if finished.cancelled():
                return
            result: SubmissionResult = finished.result()
            logger.debug(
                "detached_submission_settled",
                address=tx.sender,
                nonce=tx.sequence,
                endpoint=result.endpoint,
                tx_hash=result.tx_hash,
                error=result.error,
            )

        task.add_done_callback(_on_done)

    async def _submit(self, tx: SignedTransaction, node: NodeInterface) -> SubmissionResult:
        """Submit to one endpoint; never raises except on cancellation."""
        try:
            tx_hash = await asyncio.wait_for(
                node.send_raw_transaction(tx.raw_transaction),
                timeout=self.submit_timeout,
            )
        except asyncio.TimeoutError:
            return SubmissionResult(endpoint=node.url, error=f"timed out after {self.submit_timeout}s")
        except (TransactionSubmitError, NodeConnectionError) as e:
            return SubmissionResult(endpoint=node.url, error=str(e))
        except Exception as e:
            # unexpected adapter errors count as a rejection
            logger.error("submission_crashed", endpoint=node.url, error=str(e))
            return SubmissionResult(endpoint=node.url, error=f"{type(e).__name__}: {e}")

        if not tx_hash:
            return SubmissionResult(endpoint=node.url, error="empty submission result")

        return SubmissionResult(endpoint=node.url, tx_hash=tx_hash)
