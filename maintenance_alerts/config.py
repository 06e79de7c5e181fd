"""
Maintenance Alert Engine - Configuration.

============================================================
PURPOSE
============================================================
Named policy constants and runtime settings for the alert
engine. Nothing in the classifier or factory hard-codes a
threshold; they all read from AlertPolicyConfig.

============================================================
THRESHOLD PHILOSOPHY
============================================================
All tier windows are expressed as multiples of the supplier
lead time:

- days <= lead                 : CRITICAL tiers eligible
- days <= lead * 1.5           : WARNING tier eligible
- days <= lead * 2.0           : INFO tier eligible
- days >  lead * 2.0           : too far out, no alert

============================================================
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

from dotenv import load_dotenv

from .exceptions import ValidationError
from .types import AlertType, Criticality


# ============================================================
# ALERT POLICY
# ============================================================


def _default_tier_offsets() -> Dict[AlertType, int]:
    return {
        AlertType.STOCK_OUT_CRITICAL: 0,
        AlertType.URGENT_MTBF: 0,
        AlertType.WARNING_MTBF: 1,
        AlertType.REORDER_RECOMMENDED: 2,
    }


@dataclass(frozen=True)
class AlertPolicyConfig:
    """
    Classification and expiry policy.

    Priority = criticality rank (A=1, B=2, C=3) + tier offset.
    Lower priority values are more urgent.
    """

    # Tier windows, as multiples of lead time
    warning_lead_time_multiplier: float = 1.5    # WARNING_MTBF window
    horizon_lead_time_multiplier: float = 2.0    # REORDER_RECOMMENDED window and cutoff

    # Alert lifetime
    alert_ttl_days: int = 7                      # expires_at = generated_at + 7 days

    # Criticality assumed when a component has none
    default_criticality: Criticality = Criticality.C

    # Priority offsets added to the criticality rank
    tier_priority_offsets: Dict[AlertType, int] = field(default_factory=_default_tier_offsets)

    def priority_for(self, alert_type: AlertType, criticality: Any) -> int:
        """Priority score for a tier at a given criticality."""
        rank = (criticality or self.default_criticality).rank
        return rank + self.tier_priority_offsets[alert_type]

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.warning_lead_time_multiplier < 1.0:
            errors.append("warning_lead_time_multiplier must be at least 1.0")

        if self.horizon_lead_time_multiplier < self.warning_lead_time_multiplier:
            errors.append("horizon_lead_time_multiplier must be >= warning_lead_time_multiplier")

        if self.alert_ttl_days < 1:
            errors.append("alert_ttl_days must be at least 1")

        missing = [t.value for t in AlertType if t not in self.tier_priority_offsets]
        if missing:
            errors.append(f"tier_priority_offsets missing: {', '.join(missing)}")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "warning_lead_time_multiplier": self.warning_lead_time_multiplier,
            "horizon_lead_time_multiplier": self.horizon_lead_time_multiplier,
            "alert_ttl_days": self.alert_ttl_days,
            "default_criticality": self.default_criticality.value,
            "tier_priority_offsets": {t.value: o for t, o in self.tier_priority_offsets.items()},
        }


# ============================================================
# SCHEDULER
# ============================================================


@dataclass(frozen=True)
class SchedulerConfig:
    """Periodic batch job settings."""

    interval_seconds: float = 60.0           # dashboard refresh cadence
    tenant_timeout_seconds: float = 30.0     # per-tenant evaluation budget
    max_concurrent_tenants: int = 10

    def validate(self) -> List[str]:
        errors = []

        if self.interval_seconds <= 0:
            errors.append("interval_seconds must be positive")

        if self.tenant_timeout_seconds <= 0:
            errors.append("tenant_timeout_seconds must be positive")

        if self.max_concurrent_tenants < 1:
            errors.append("max_concurrent_tenants must be at least 1")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interval_seconds": self.interval_seconds,
            "tenant_timeout_seconds": self.tenant_timeout_seconds,
            "max_concurrent_tenants": self.max_concurrent_tenants,
        }


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValidationError(
            name, f"expected {cast.__name__}, got '{raw}'", operation="load_config"
        ) from None


# ============================================================
# MASTER CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class AlertEngineConfig:
    """Complete configuration for the alert engine process."""

    policy: AlertPolicyConfig = field(default_factory=AlertPolicyConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)

    # Snapshot source: "file" or "http"
    snapshot_source: str = "file"
    snapshot_file: str = "snapshots.yaml"
    snapshot_api_url: str = ""
    snapshot_api_token: str = ""

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> "AlertEngineConfig":
        """
        Load configuration from environment variables (and .env).

        Raises:
            ValidationError: When a numeric variable cannot be parsed
        """
        load_dotenv()
        return cls(
            policy=AlertPolicyConfig(
                warning_lead_time_multiplier=_env_number("MAINT_ALERT_WARNING_MULTIPLIER", "1.5", float),
                horizon_lead_time_multiplier=_env_number("MAINT_ALERT_HORIZON_MULTIPLIER", "2.0", float),
                alert_ttl_days=_env_number("MAINT_ALERT_TTL_DAYS", "7", int),
            ),
            scheduler=SchedulerConfig(
                interval_seconds=_env_number("MAINT_ALERT_INTERVAL_SECONDS", "60", float),
                tenant_timeout_seconds=_env_number("MAINT_ALERT_TENANT_TIMEOUT_SECONDS", "30", float),
                max_concurrent_tenants=_env_number("MAINT_ALERT_MAX_CONCURRENT_TENANTS", "10", int),
            ),
            snapshot_source=os.getenv("MAINT_ALERT_SNAPSHOT_SOURCE", "file"),
            snapshot_file=os.getenv("MAINT_ALERT_SNAPSHOT_FILE", "snapshots.yaml"),
            snapshot_api_url=os.getenv("MAINT_ALERT_SNAPSHOT_API_URL", ""),
            snapshot_api_token=os.getenv("MAINT_ALERT_SNAPSHOT_API_TOKEN", ""),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = self.policy.validate() + self.scheduler.validate()

        if self.snapshot_source not in ("file", "http"):
            errors.append(f"unknown snapshot_source: {self.snapshot_source}")
        elif self.snapshot_source == "http" and not self.snapshot_api_url:
            errors.append("snapshot_api_url required for http snapshot source")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "policy": self.policy.to_dict(),
            "scheduler": self.scheduler.to_dict(),
            "snapshot_source": self.snapshot_source,
            "snapshot_file": self.snapshot_file,
            "snapshot_api_url": self.snapshot_api_url,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }


# ============================================================
# FACTORIES
# ============================================================


def get_default_config() -> AlertEngineConfig:
    """Return the default alert engine configuration."""
    return AlertEngineConfig()


def get_conservative_config() -> AlertEngineConfig:
    """
    Return a more conservative configuration.

    Wider windows = earlier warnings.
    """
    return AlertEngineConfig(
        policy=AlertPolicyConfig(
            warning_lead_time_multiplier=2.0,
            horizon_lead_time_multiplier=3.0,
        ),
    )
