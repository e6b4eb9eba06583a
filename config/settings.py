"""
Contributor configuration.

Values come from the environment, optionally seeded from a `.env` file at the
project root.

Environment variables:
- CONDUCTOR_CHAIN: u16 chain id of the trusted conductor (required)
- CONDUCTOR_ADDRESS: 32-byte hex emitter address of the conductor (required)
- LOCAL_CHAIN_ID: chain id written into attestations (default: 1)
- KYC_SOURCE_ADDRESS: 32-byte hex leading slot of signed KYC intents
  (default: CONDUCTOR_ADDRESS)
- ACCEPTED_TOKENS_MAX: cap on accepted assets per sale (default: 256)
- LEDGER_BACKEND: "memory" or "supabase" (default: memory)
- SUPABASE_URL / SUPABASE_KEY: required when LEDGER_BACKEND=supabase
- LOG_FORMAT: "text" or "json" (default: text)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from domain.conductor import ConductorIdentity
from domain.messages import ACCEPTED_TOKENS_MAX

_ENV_PATH = Path(__file__).parent.parent / ".env"

_BACKENDS = ("memory", "supabase")


def parse_hex_bytes(name: str, value: str, length: int) -> bytes:
    """Decode a (optionally 0x-prefixed) hex string of an exact byte length."""

    text = value[2:] if value.lower().startswith("0x") else value
    try:
        raw = bytes.fromhex(text)
    except ValueError as e:
        raise RuntimeError(f"{name} is not valid hex") from e
    if len(raw) != length:
        raise RuntimeError(f"{name} must be {length} bytes, got {len(raw)}")
    return raw


@dataclass(frozen=True, slots=True)
class ContributorSettings:
    conductor_chain: int
    conductor_address: bytes
    local_chain_id: int = 1
    kyc_source_address: Optional[bytes] = None
    accepted_tokens_max: int = ACCEPTED_TOKENS_MAX
    ledger_backend: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    log_format: str = "text"

    @property
    def conductor(self) -> ConductorIdentity:
        return ConductorIdentity(chain=self.conductor_chain, address=self.conductor_address)

    @property
    def kyc_source(self) -> bytes:
        return self.kyc_source_address or self.conductor_address


def load_settings(env: Mapping[str, str] | None = None, *, env_path: Path | None = None) -> ContributorSettings:
    """
    Build settings from `env` (defaults to the process environment).

    Raises:
        RuntimeError: a required variable is missing or malformed.
    """

    if env is None:
        load_dotenv(dotenv_path=env_path or _ENV_PATH)
        env = os.environ

    conductor_chain = env.get("CONDUCTOR_CHAIN")
    if not conductor_chain:
        raise RuntimeError(
            "Missing environment variable: CONDUCTOR_CHAIN. "
            "Set CONDUCTOR_CHAIN to the chain id of the conductor deployment."
        )

    conductor_address = env.get("CONDUCTOR_ADDRESS")
    if not conductor_address:
        raise RuntimeError(
            "Missing environment variable: CONDUCTOR_ADDRESS. "
            "Set CONDUCTOR_ADDRESS to the 32-byte hex emitter address of the conductor."
        )

    kyc_source = env.get("KYC_SOURCE_ADDRESS")
    backend = env.get("LEDGER_BACKEND", "memory").lower()
    if backend not in _BACKENDS:
        raise RuntimeError(f"LEDGER_BACKEND must be one of {', '.join(_BACKENDS)}")

    supabase_url = env.get("SUPABASE_URL")
    supabase_key = env.get("SUPABASE_KEY")
    if backend == "supabase" and not (supabase_url and supabase_key):
        raise RuntimeError("LEDGER_BACKEND=supabase requires SUPABASE_URL and SUPABASE_KEY")

    try:
        return ContributorSettings(
            conductor_chain=int(conductor_chain),
            conductor_address=parse_hex_bytes("CONDUCTOR_ADDRESS", conductor_address, 32),
            local_chain_id=int(env.get("LOCAL_CHAIN_ID", "1")),
            kyc_source_address=parse_hex_bytes("KYC_SOURCE_ADDRESS", kyc_source, 32) if kyc_source else None,
            accepted_tokens_max=int(env.get("ACCEPTED_TOKENS_MAX", str(ACCEPTED_TOKENS_MAX))),
            ledger_backend=backend,
            supabase_url=supabase_url,
            supabase_key=supabase_key,
            log_format=env.get("LOG_FORMAT", "text").lower(),
        )
    except ValueError as e:
        raise RuntimeError(f"Invalid contributor configuration: {e}") from e


__all__ = ["ContributorSettings", "load_settings", "parse_hex_bytes"]
