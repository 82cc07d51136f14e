"""
Batch orchestrator.

Coordinates fee computation, per-identity preparation and the broadcast
races into one run.
"""

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple, Union

import structlog

from blaster.broadcast.racer import BroadcastRacer
from blaster.config import BlasterConfig
from blaster.core.credentials import Credential
from blaster.core.fees import FeeEstimator, FeeProfile
from blaster.core.outcome import (
    BroadcastOutcome,
    IdentityFailure,
    OutcomeStatus,
    PreparationStage,
)
from blaster.core.plan import MintPlan
from blaster.core.sequencer import NonceResolutionError, NonceSequencer
from blaster.node.interface import NodeInterface
from blaster.tx.builder import SignedTransaction, TransactionBuildError, TransactionBuilder
from blaster.tx.signer import SignerError, TransactionSigner

logger = structlog.get_logger(__name__)


class NothingToBroadcastError(Exception):
    """Raised when no identity survived preparation."""
    pass


@dataclass(frozen=True)
class PreparedIdentity:
    """An identity whose whole batch is signed and ready."""
    credential: Credential
    address: str
    transactions: List[SignedTransaction]


class BatchOrchestrator:
    """
    Runs one blast.

    Coordinates:
    - Fee profile computation (once, fatal on failure)
    - Per-identity nonce resolution and offline signing, all identities in parallel
    - Concurrent broadcast races for every signed transaction
    - Outcome collection

    Usage:
        ```python
        orchestrator = BatchOrchestrator(config, endpoints)
        outcomes = await orchestrator.run(credentials, MintPlan.from_config(config))
        await orchestrator.racer.drain(config.drain_timeout_seconds)
        ```
    """

    def __init__(
        self,
        config: BlasterConfig,
        endpoints: Sequence[NodeInterface],
        racer: Optional[BroadcastRacer] = None,
        builder: Optional[TransactionBuilder] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Run configuration
            endpoints: Endpoint pool, first entry is primary
            racer: Custom racer (created from config if not provided)
            builder: Custom transaction builder
        """
        if not endpoints:
            raise ValueError("endpoint pool is empty")

        self.config = config
        self.endpoints = tuple(endpoints)
        self.primary = self.endpoints[0]

        self.racer = racer or BroadcastRacer(submit_timeout=config.submit_timeout_seconds)
        self.builder = builder or TransactionBuilder()
        self.estimator = FeeEstimator.from_config(config, self.primary)
        self.sequencer = NonceSequencer(self.primary)

        # State of the last run
        self.fees: Optional[FeeProfile] = None
        self.skipped: List[IdentityFailure] = []
        self.outcomes: List[BroadcastOutcome] = []
        self._started_at: Optional[datetime] = None
        self._finished_at: Optional[datetime] = None

    async def run(
        self,
        credentials: Sequence[Credential],
        plan: MintPlan,
    ) -> List[BroadcastOutcome]:
        """
        Execute a run.

        Args:
            credentials: One entry per identity
            plan: Target call

        Returns:
            One outcome per broadcast transaction

        Raises:
            FeeEstimationError: If fees cannot be computed
            NothingToBroadcastError: If every identity failed preparation
        """
        self.skipped = []
        self.outcomes = []
        self._started_at = datetime.now(timezone.utc)
        self._finished_at = None

        logger.info(
            "run_starting",
            wallets=len(credentials),
            endpoints=len(self.endpoints),
            pure_spam=self.config.pure_spam,
        )

        # 1. Fees, once
        self.fees = await self.estimator.compute_fees()

        # 2. Report endpoint chain ids
        if self.config.probe_endpoints:
            await self.probe_endpoints(self.fees.chain_id)

        # 3. Prepare every identity in parallel
        prepared = await self._prepare_all(credentials, self.fees, plan)

        # 4. Nothing left
        if not prepared:
            raise NothingToBroadcastError(
                f"No wallet could be prepared ({len(self.skipped)} skipped)"
            )

        # 5. Flatten and race everything at once
        transactions = [tx for identity in prepared for tx in identity.transactions]
        logger.info(
            "broadcast_starting",
            transactions=len(transactions),
            wallets=len(prepared),
            skipped=len(self.skipped),
        )

        if self.config.pure_spam:
            outcomes = [self.racer.dispatch(tx, self.endpoints) for tx in transactions]
        else:
            outcomes = list(await asyncio.gather(
                *(self.racer.race(tx, self.endpoints) for tx in transactions)
            ))

        # 6. Collect
        self.outcomes = outcomes
        self._finished_at = datetime.now(timezone.utc)

        stats = self.get_stats()
        logger.info(
            "run_finished",
            succeeded=stats["succeeded"],
            failed=stats["failed"],
            dispatched=stats["dispatched"],
            skipped_wallets=stats["skipped_wallets"],
        )
        return outcomes

    async def probe_endpoints(self, expected_chain_id: int) -> List[Optional[int]]:
        """
        Query every endpoint's chain id and log problems.

        Never raises; an endpoint that fails the probe still takes part in races.

        Returns:
            Chain id per endpoint, None where the query failed
        """
        results = await asyncio.gather(
            *(node.get_chain_id() for node in self.endpoints),
            return_exceptions=True,
        )

        chain_ids: List[Optional[int]] = []
        for node, result in zip(self.endpoints, results):
            if isinstance(result, BaseException):
                logger.warning("endpoint_unreachable", url=node.url, error=str(result))
                chain_ids.append(None)
                continue

            if result != expected_chain_id:
                logger.warning(
                    "endpoint_chain_mismatch",
                    url=node.url,
                    chain_id=result,
                    expected=expected_chain_id,
                )
            else:
                logger.info("endpoint_ready", url=node.url, chain_id=result)
            chain_ids.append(result)

        return chain_ids

    async def _prepare_all(
        self,
        credentials: Sequence[Credential],
        fees: FeeProfile,
        plan: MintPlan,
    ) -> List[PreparedIdentity]:
        identities = self._resolve_identities(credentials)

        results = await asyncio.gather(
            *(self._prepare_identity(signer, credential, fees, plan) for signer, credential in identities)
        )

        prepared = []
        for result in results:
            if isinstance(result, IdentityFailure):
                self.skipped.append(result)
            else:
                prepared.append(result)
        self.skipped.sort(key=lambda failure: failure.line_number)
        return prepared

    def _resolve_identities(
        self,
        credentials: Sequence[Credential],
    ) -> List[Tuple[TransactionSigner, Credential]]:
        """
        Derive each credential's address, one entry per distinct address.

        Repeated keys are merged into the first occurrence with their counts
        summed, so one address is never sequenced by two tasks.
        """
        by_address: Dict[str, Tuple[TransactionSigner, Credential]] = {}

        for credential in credentials:
            try:
                signer = TransactionSigner.from_private_key(credential.private_key)
            except SignerError as e:
                self.skipped.append(self._skip(credential, PreparationStage.KEY, str(e)))
                continue

            existing = by_address.get(signer.address)
            if existing is None:
                by_address[signer.address] = (signer, credential)
                continue

            first_signer, first = existing
            logger.warning(
                "duplicate_wallet_merged",
                address=signer.address,
                line=credential.line_number,
                merged_into=first.line_number,
                count=credential.count,
            )
            by_address[signer.address] = (
                first_signer,
                replace(first, count=first.count + credential.count),
            )

        return list(by_address.values())

    async def _prepare_identity(
        self,
        signer: TransactionSigner,
        credential: Credential,
        fees: FeeProfile,
        plan: MintPlan,
    ) -> Union[PreparedIdentity, IdentityFailure]:
        """Resolve nonces and sign one identity's batch; failures become records."""
        try:
            start = await self.sequencer.resolve_starting_sequence(signer.address)
        except NonceResolutionError as e:
            return self._skip(credential, PreparationStage.NONCE, str(e), signer.address)

        try:
            sequences = self.sequencer.assign(start, credential.count)
            transactions = self.builder.build_batch(signer, sequences, fees, plan)
        except (TransactionBuildError, ValueError) as e:
            return self._skip(credential, PreparationStage.BUILD, str(e), signer.address)

        logger.info(
            "wallet_prepared",
            address=signer.address,
            first_nonce=start,
            count=len(transactions),
        )
        return PreparedIdentity(
            credential=credential,
            address=signer.address,
            transactions=transactions,
        )

    def _skip(
        self,
        credential: Credential,
        stage: PreparationStage,
        reason: str,
        address: Optional[str] = None,
    ) -> IdentityFailure:
        logger.warning(
            "wallet_skipped",
            line=credential.line_number,
            address=address,
            stage=stage.value,
            reason=reason,
        )
        return IdentityFailure(
            line_number=credential.line_number,
            stage=stage,
            reason=reason,
            requested=credential.count,
            address=address,
        )

    def get_stats(self) -> dict:
        """Get statistics of the last run."""
        by_status = {status: 0 for status in OutcomeStatus}
        for outcome in self.outcomes:
            by_status[outcome.status] += 1

        return {
            "endpoints": len(self.endpoints),
            "fees": self.fees.to_dict() if self.fees else None,
            "transactions": len(self.outcomes),
            "succeeded": by_status[OutcomeStatus.SUCCESS],
            "failed": by_status[OutcomeStatus.FAILED],
            "dispatched": by_status[OutcomeStatus.DISPATCHED],
            "skipped_wallets": len(self.skipped),
            "in_flight": self.racer.in_flight,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "finished_at": self._finished_at.isoformat() if self._finished_at else None,
        }
