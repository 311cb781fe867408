from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional

import base58
from solders.keypair import Keypair

from .errors import ConfigurationError

log = logging.getLogger(__name__)

SECRET_KEY_LENGTH = 64


@dataclass(frozen=True)
class WalletRecord:
    index: int  # position among parsed records, not the file line
    address: str
    signer: Keypair
    source_line: int  # 1-based
    secret: str


@dataclass(frozen=True)
class EligibleWallet:
    address: str
    secret: str
    estimated_claimable_lamports: int
    empty_accounts: int


def decode_secret_key(line: str) -> Optional[Keypair]:
    """
    Returns the keypair encoded on a wallets-file line, or None when the line
    is blank, a `#` comment, or not a valid base58 64-byte secret key.
    """
    text = line.strip()
    if not text or text.startswith("#"):
        return None

    try:
        raw = base58.b58decode(text)
    except ValueError:
        return None
    if len(raw) != SECRET_KEY_LENGTH:
        return None

    try:
        return Keypair.from_bytes(raw)
    except ValueError:
        return None


def _is_content(line: str) -> bool:
    text = line.strip()
    return bool(text) and not text.startswith("#")


def parse_wallet_lines(lines: Iterable[str]) -> List[WalletRecord]:
    decoded = [
        (lineno, line.strip(), decode_secret_key(line))
        for lineno, line in enumerate(lines, start=1)
    ]

    wallets: List[WalletRecord] = []
    for lineno, text, keypair in decoded:
        if keypair is None:
            if _is_content(text):
                log.warning("Skipping line %d: not a valid base58 secret key", lineno)
            continue
        wallets.append(
            WalletRecord(
                index=len(wallets),
                address=str(keypair.pubkey()),
                signer=keypair,
                source_line=lineno,
                secret=text,
            )
        )
    return wallets


def load_wallets(path: str) -> List[WalletRecord]:
    if not os.path.exists(path):
        raise ConfigurationError(
            f"Wallets file {path} not found. Create it with one private key per line."
        )
    with open(path, "r", encoding="utf-8") as f:
        wallets = parse_wallet_lines(f.read().split("\n"))
    log.debug("Loaded %d wallets from %s", len(wallets), path)
    return wallets


def load_fund_keypair(path: str) -> Keypair:
    """Only the first non-blank line of the fund file is used."""
    if not os.path.exists(path):
        raise ConfigurationError(
            f"Fund file {path} not found. Put the main wallet private key in it."
        )
    with open(path, "r", encoding="utf-8") as f:
        first = next((line for line in f if line.strip()), "")

    keypair = decode_secret_key(first)
    if keypair is None:
        raise ConfigurationError(f"Invalid private key in {path}")
    return keypair


def load_addresses(path: str) -> List[str]:
    if not os.path.exists(path):
        raise ConfigurationError(
            f"Address file {path} not found. Run the check mode first."
        )
    with open(path, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


def write_eligible_files(
    eligible: List[EligibleWallet], keys_path: str, address_path: str
) -> None:
    # Both files are rewritten in full so they always match line-for-line.
    with open(keys_path, "w", encoding="utf-8") as f:
        f.write("".join(f"{w.secret}\n" for w in eligible))
    with open(address_path, "w", encoding="utf-8") as f:
        f.write("".join(f"{w.address}\n" for w in eligible))
