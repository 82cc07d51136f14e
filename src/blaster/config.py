"""
Configuration management for the mint blaster.

Supports configuration via environment variables and .env files. Variable
names are unprefixed (RPC_URLS, CONTRACT_ADDRESS, MINT_PRICE, ...) so an
existing mint .env can be reused as is.
"""

from decimal import Decimal
from typing import Optional, Tuple

from eth_utils import is_address, to_checksum_address, to_wei
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BlasterConfig(BaseSettings):
    """
    Configuration settings for a blast run.

    Built once at startup and passed to every component. The model is frozen,
    so no component can change settings mid-run.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Endpoint settings
    rpc_urls: str = Field(
        default="",
        description="Comma separated JSON-RPC endpoint URLs, first is primary"
    )

    # Target call
    contract_address: Optional[str] = Field(
        default=None,
        description="Contract the mint call is sent to"
    )
    mint_price: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Value attached to every transaction, in ether"
    )
    calldata: Optional[str] = Field(
        default=None,
        description="Hex encoded call payload"
    )
    count_per_wallet: int = Field(
        default=1,
        ge=1,
        description="Transactions per wallet when the wallets file gives no count"
    )

    # Credential source
    wallets_file: str = Field(
        default="wallets.txt",
        description="Line delimited private keys, optionally 'key,count'"
    )

    # Fee and gas settings
    gas_limit: int = Field(
        default=300_000,
        gt=0,
        description="Gas limit for every transaction"
    )
    priority_gwei: Decimal = Field(
        default=Decimal("10"),
        ge=0,
        description="Priority tip in gwei"
    )
    basefee_mult: Decimal = Field(
        default=Decimal("2"),
        ge=1,
        description="Multiplier applied to the base fee for the fee ceiling"
    )

    # Broadcast settings
    pure_spam: bool = Field(
        default=False,
        description="Fire and forget, do not wait for any endpoint acknowledgment"
    )
    submit_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound for a single endpoint submission"
    )
    drain_timeout_seconds: float = Field(
        default=10.0,
        ge=0,
        description="How long to wait for detached submissions before shutdown"
    )
    rpc_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout for chain-state queries"
    )
    probe_endpoints: bool = Field(
        default=True,
        description="Query every endpoint's chain id before broadcasting"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )

    @field_validator("contract_address")
    @classmethod
    def _check_contract_address(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not is_address(value):
            raise ValueError(f"invalid contract address: {value!r}")
        return to_checksum_address(value)

    @field_validator("calldata")
    @classmethod
    def _check_calldata(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        body = value[2:] if value.lower().startswith("0x") else value
        if not body:
            raise ValueError("calldata is empty")
        try:
            bytes.fromhex(body)
        except ValueError:
            raise ValueError("calldata is not valid hex")
        return "0x" + body.lower()

    @property
    def endpoints(self) -> Tuple[str, ...]:
        """Endpoint URLs in configured order."""
        return tuple(url.strip() for url in self.rpc_urls.split(",") if url.strip())

    @property
    def calldata_bytes(self) -> bytes:
        """Decoded call payload."""
        if not self.calldata:
            return b""
        return bytes.fromhex(self.calldata[2:])

    @property
    def value_wei(self) -> int:
        """Attached value in wei."""
        return int(to_wei(self.mint_price or 0, "ether"))

    @property
    def priority_fee_wei(self) -> int:
        """Priority tip in wei."""
        return int(to_wei(self.priority_gwei, "gwei"))

    def missing_required(self) -> Tuple[str, ...]:
        """Names of settings a run cannot start without."""
        missing = []
        if not self.endpoints:
            missing.append("RPC_URLS")
        if not self.contract_address:
            missing.append("CONTRACT_ADDRESS")
        if self.mint_price is None:
            missing.append("MINT_PRICE")
        if not self.calldata:
            missing.append("CALLDATA")
        return tuple(missing)
