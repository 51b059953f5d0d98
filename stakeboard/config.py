"""Central configuration for the staking dashboard.

Consolidates API endpoints, tracked addresses, resolver pacing and storage
paths into frozen dataclasses with environment variable overrides.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class TzktConfig:
    base_url: str = "https://api.tzkt.io"
    page_size: int = 10000
    timeout: float = 30.0


@dataclass(frozen=True)
class BakeryConfig:
    baker_address: str = "tz3W7k9v3uniY1f2HQRKxymJybNvH3FgvZ5N"
    actions: tuple[str, ...] = ("stake", "unstake", "finalize")


@dataclass(frozen=True)
class ProxyConfig:
    contract_address: str = "KT1FRN2RmitUkyyovtjRMrU1G9zwKzgESXm8"
    token_contract: str = "KT1FRN2RmitUkyyovtjRMrU1G9zwKzgESXm8"
    entrypoints: tuple[str, ...] = ("deposit", "request_withdrawal", "finalize_withdrawal")


@dataclass(frozen=True)
class ResolverConfig:
    batch_size: int = 2
    stagger_delay: float = 0.3
    batch_pause: float = 0.5
    match_tolerance: float = 0.1


@dataclass
class AppConfig:
    tzkt: TzktConfig = field(default_factory=TzktConfig)
    bakery: BakeryConfig = field(default_factory=BakeryConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    cache_db_path: Path = Path("data/stakeboard.db")
    export_path: Path = Path("data/dashboard.json")


def load_config(env_file: Path | None = None) -> AppConfig:
    """Load configuration from environment variables + defaults.

    Args:
        env_file: Path to .env file. If None, searches project root.
    """
    if env_file and env_file.exists():
        load_dotenv(env_file)
    else:
        for candidate in [Path(".env"), Path(__file__).parent.parent / ".env"]:
            if candidate.exists():
                load_dotenv(candidate)
                break

    tzkt_defaults = TzktConfig()
    bakery_defaults = BakeryConfig()
    proxy_defaults = ProxyConfig()

    contract = os.environ.get("PROXY_CONTRACT", proxy_defaults.contract_address)

    return AppConfig(
        tzkt=TzktConfig(
            base_url=os.environ.get("TZKT_BASE_URL", tzkt_defaults.base_url),
            timeout=float(os.environ.get("TZKT_TIMEOUT", tzkt_defaults.timeout)),
        ),
        bakery=BakeryConfig(
            baker_address=os.environ.get("BAKER_ADDRESS", bakery_defaults.baker_address),
        ),
        proxy=ProxyConfig(
            contract_address=contract,
            token_contract=os.environ.get("TOKEN_CONTRACT", contract),
        ),
        cache_db_path=Path(os.environ.get("CACHE_DB_PATH", "data/stakeboard.db")),
        export_path=Path(os.environ.get("EXPORT_PATH", "data/dashboard.json")),
    )
