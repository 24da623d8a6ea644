"""
Centralized settings and path configuration for the pricing engine.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


def get_package_root() -> Path:
    """Directory of the cap_pricing package."""
    return Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Directory holding the pricing table CSV files
    tables_dir: Path

    # Cache
    cache_enabled: bool = True
    cache_ttl_seconds: float = 300.0

    # Tier bracketing for exact-breakpoint quantities
    # "upper_inclusive" or "lower_inclusive", see engine.tiers.TierBoundaryPolicy
    tier_policy: str = "upper_inclusive"

    # Table loading
    strict_tables: bool = False
    use_fallback_tables: bool = True
    # Seconds a fallback table is served before the source is tried again
    fallback_retry_seconds: float = 30.0

    # Quantities resolved ahead of time by prewarm()
    prewarm_quantities: tuple = (48, 144, 288, 576, 1152, 2880)

    @classmethod
    def load(cls, tables_dir: Optional[Path] = None) -> 'Settings':
        """Load settings from defaults and CAP_PRICING_* environment variables."""
        env_dir = os.environ.get("CAP_PRICING_TABLES_DIR")
        root = tables_dir or (Path(env_dir) if env_dir else get_package_root() / 'data' / 'tables')

        ttl = os.environ.get("CAP_PRICING_CACHE_TTL")
        policy = os.environ.get("CAP_PRICING_TIER_POLICY")
        retry = os.environ.get("CAP_PRICING_FALLBACK_RETRY")

        return cls(
            tables_dir=Path(root),
            cache_enabled=_env_bool("CAP_PRICING_CACHE_ENABLED", True),
            cache_ttl_seconds=float(ttl) if ttl else 300.0,
            tier_policy=policy.strip().lower() if policy else "upper_inclusive",
            strict_tables=_env_bool("CAP_PRICING_STRICT_TABLES", False),
            use_fallback_tables=_env_bool("CAP_PRICING_USE_FALLBACK", True),
            fallback_retry_seconds=float(retry) if retry else 30.0,
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
