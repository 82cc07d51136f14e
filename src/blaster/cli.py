"""
Command-line interface for the mint blaster.

Provides commands for running a blast and checking a wallets file.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Sequence

import structlog
from pydantic import ValidationError

from blaster import __version__
from blaster.config import BlasterConfig
from blaster.core.credentials import CredentialError, load_credentials
from blaster.core.fees import FeeEstimationError
from blaster.core.orchestrator import BatchOrchestrator, NothingToBroadcastError
from blaster.core.outcome import BroadcastOutcome, IdentityFailure, OutcomeStatus
from blaster.core.plan import MintPlan
from blaster.node.interface import NodeInterface
from blaster.node.jsonrpc import JsonRpcAdapter
from blaster.tx.signer import SignerError, TransactionSigner


class FatalError(Exception):
    """A precondition failure that ends the process with a non-zero status."""
    pass


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="blaster",
        description="Race signed mint transactions across many EVM endpoints",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Run command
    run_parser = subparsers.add_parser("run", help="Sign and broadcast the mint batch")
    run_parser.add_argument("--rpc-urls", help="Comma separated endpoint URLs (env RPC_URLS)")
    run_parser.add_argument("--contract", dest="contract_address", help="Target contract (env CONTRACT_ADDRESS)")
    run_parser.add_argument("--value", dest="mint_price", help="Value per transaction in ether (env MINT_PRICE)")
    run_parser.add_argument("--calldata", help="Hex call payload (env CALLDATA)")
    run_parser.add_argument(
        "--count",
        dest="count_per_wallet",
        type=int,
        help="Transactions per wallet when the wallets file gives none (env COUNT_PER_WALLET)",
    )
    run_parser.add_argument("--wallets", dest="wallets_file", help="Wallets file (default: wallets.txt)")
    run_parser.add_argument("--gas-limit", type=int, help="Gas limit (default: 300000)")
    run_parser.add_argument("--priority-gwei", help="Priority tip in gwei (default: 10)")
    run_parser.add_argument("--basefee-mult", help="Base fee multiplier (default: 2)")
    run_parser.add_argument(
        "--pure-spam",
        action="store_true",
        default=None,
        help="Do not wait for any endpoint acknowledgment",
    )
    run_parser.add_argument("--timeout", dest="submit_timeout_seconds", type=float,
                            help="Per-submission timeout in seconds (default: 5)")
    run_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    run_parser.add_argument(
        "--log-json",
        action="store_true",
        default=None,
        help="Output logs in JSON format",
    )

    # Check command
    check_parser = subparsers.add_parser("check", help="Validate a wallets file offline")
    check_parser.add_argument("--wallets", dest="wallets_file", help="Wallets file (default: wallets.txt)")
    check_parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    return parser


_OVERRIDE_FIELDS = (
    "rpc_urls",
    "contract_address",
    "mint_price",
    "calldata",
    "count_per_wallet",
    "wallets_file",
    "gas_limit",
    "priority_gwei",
    "basefee_mult",
    "pure_spam",
    "submit_timeout_seconds",
    "log_level",
    "log_json",
)


def build_config(args: argparse.Namespace) -> BlasterConfig:
    """Build the run configuration; arguments override the environment."""
    overrides = {
        name: getattr(args, name)
        for name in _OVERRIDE_FIELDS
        if getattr(args, name, None) is not None
    }
    try:
        return BlasterConfig(**overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in e.errors()
        )
        raise FatalError(f"Invalid configuration: {problems}")


def create_endpoints(config: BlasterConfig) -> List[NodeInterface]:
    """Create one adapter per configured endpoint."""
    return [JsonRpcAdapter(url, timeout=config.rpc_timeout_seconds) for url in config.endpoints]


def format_outcome(outcome: BroadcastOutcome) -> str:
    """One report line for a transaction."""
    head = f"{outcome.sender}  nonce={outcome.sequence}"
    if outcome.status == OutcomeStatus.SUCCESS:
        return f"{head}  OK {outcome.tx_hash}  via {outcome.endpoint}"
    if outcome.status == OutcomeStatus.DISPATCHED:
        return f"{head}  SENT {outcome.tx_hash}"
    reasons = ", ".join(f"{url}: {error}" for url, error in outcome.errors.items())
    return f"{head}  FAILED ({reasons or 'no endpoint accepted'})"


def format_skipped(failure: IdentityFailure) -> str:
    """One report line for a skipped wallet."""
    who = failure.address or f"wallet on line {failure.line_number}"
    return f"{who}  SKIPPED {failure.requested} tx ({failure.stage.value}): {failure.reason}"


def print_report(outcomes: Sequence[BroadcastOutcome], skipped: Sequence[IdentityFailure]) -> None:
    """Print every outcome and skipped wallet."""
    for outcome in sorted(outcomes, key=lambda o: (o.sender, o.sequence)):
        print(format_outcome(outcome))
    for failure in skipped:
        print(format_skipped(failure))

    succeeded = sum(1 for o in outcomes if o.status == OutcomeStatus.SUCCESS)
    dispatched = sum(1 for o in outcomes if o.status == OutcomeStatus.DISPATCHED)
    failed = len(outcomes) - succeeded - dispatched
    print()
    print(f"Accepted: {succeeded}  Sent: {dispatched}  Failed: {failed}  Skipped wallets: {len(skipped)}")


async def run_blast(config: BlasterConfig) -> List[BroadcastOutcome]:
    """Run one blast and print the report."""
    missing = config.missing_required()
    if missing:
        raise FatalError(f"Missing required settings: {', '.join(missing)}")

    try:
        credentials = load_credentials(config.wallets_file, default_count=config.count_per_wallet)
    except CredentialError as e:
        raise FatalError(str(e))

    plan = MintPlan.from_config(config)
    endpoints = create_endpoints(config)
    orchestrator = BatchOrchestrator(config, endpoints)

    print(f"Blasting from {len(credentials)} wallet(s) across {len(endpoints)} endpoint(s)...")

    try:
        outcomes = await orchestrator.run(credentials, plan)
        print_report(outcomes, orchestrator.skipped)
        return outcomes
    except FeeEstimationError as e:
        raise FatalError(str(e))
    except NothingToBroadcastError as e:
        print_report([], orchestrator.skipped)
        raise FatalError(str(e))
    finally:
        await orchestrator.racer.drain(config.drain_timeout_seconds)
        for node in endpoints:
            await node.disconnect()


def check_wallets(path: str, default_count: int) -> int:
    """Print the address derived from every wallets file entry."""
    try:
        credentials = load_credentials(path, default_count=default_count)
    except CredentialError as e:
        raise FatalError(str(e))

    invalid = 0
    for credential in credentials:
        try:
            signer = TransactionSigner.from_private_key(credential.private_key)
        except SignerError as e:
            invalid += 1
            print(f"line {credential.line_number}: INVALID ({e})")
            continue
        print(f"line {credential.line_number}: {signer.address}  count={credential.count}")

    print()
    print(f"{len(credentials) - invalid} usable, {invalid} invalid")
    return invalid


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        config = build_config(args)
        setup_logging(config.log_level, config.log_json)

        if args.command == "run":
            asyncio.run(run_blast(config))
        elif args.command == "check":
            if check_wallets(config.wallets_file, config.count_per_wallet):
                sys.exit(1)
    except FatalError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
