"""
Credential source parsing.

Reads the line delimited wallets file: one private key per line, optionally
followed by a comma and the number of transactions for that wallet.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

import structlog

logger = structlog.get_logger(__name__)


class CredentialError(Exception):
    """Raised when the credential source yields no usable entry."""
    pass


@dataclass(frozen=True)
class Credential:
    """
    One entry of the credential source.

    The key is kept as text; whether it is a valid secp256k1 key is decided
    when the identity is prepared, so a bad key only drops its own wallet.

    Attributes:
        private_key: Raw private key text
        count: Number of transactions requested for this wallet
        line_number: 1-based line in the source, for reporting
    """

    private_key: str
    count: int
    line_number: int

    def __repr__(self) -> str:
        return f"Credential(line={self.line_number}, count={self.count})"


def parse_credential_lines(lines: Iterable[str], default_count: int = 1) -> List[Credential]:
    """
    Parse credential lines.

    Blank lines and lines starting with '#' are ignored. Lines with a
    count that is not a positive integer are skipped.

    Args:
        lines: Source lines
        default_count: Count used when a line has none

    Returns:
        Parsed credentials in source order
    """
    credentials = []

    for line_number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        key, _, count_text = line.partition(",")
        key = key.strip()
        count_text = count_text.strip()

        if not key:
            logger.warning("credential_skipped", line=line_number, reason="empty key")
            continue

        if count_text:
            try:
                count = int(count_text)
            except ValueError:
                logger.warning("credential_skipped", line=line_number, reason="count is not an integer")
                continue
        else:
            count = default_count

        if count < 1:
            logger.warning("credential_skipped", line=line_number, reason="count must be positive")
            continue

        credentials.append(Credential(private_key=key, count=count, line_number=line_number))

    return credentials


def load_credentials(path: str, default_count: int = 1) -> List[Credential]:
    """
    Load credentials from a wallets file.

    Raises:
        CredentialError: If the file is missing or holds no usable entry
    """
    source = Path(path)
    if not source.exists():
        raise CredentialError(f"Wallets file not found: {path}")

    try:
        text = source.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise CredentialError(f"Wallets file is not valid UTF-8: {path}") from e
    except OSError as e:
        raise CredentialError(f"Cannot read wallets file {path}: {e}") from e

    credentials = parse_credential_lines(text.splitlines(), default_count=default_count)

    if not credentials:
        raise CredentialError(f"No wallets found in {path}")

    logger.info(
        "credentials_loaded",
        path=path,
        wallets=len(credentials),
        transactions=sum(c.count for c in credentials),
    )
    return credentials
