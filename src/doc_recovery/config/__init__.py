"""
Recovery engine configuration module.

Loads RecoveryConfig from an optional YAML file with environment variable
overrides.
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

__all__ = [
    "RecoveryConfig",
    "load_recovery_config",
    "get_recovery_config",
]

# Environment variable -> (config field, converter)
ENV_OVERRIDES = {
    "DOC_RECOVERY_CHECKPOINT_DB": ("checkpoint_db_path", str),
    "DOC_RECOVERY_SWEEP_INTERVAL": ("sweep_interval_seconds", float),
    "DOC_RECOVERY_QUEUE_SIZE": ("subscriber_queue_size", int),
}


@dataclass
class RecoveryConfig:
    """
    Recovery engine configuration.

    Attributes:
        session_max_age_hours: Sessions idle longer than this are unrecoverable and swept
        active_window_minutes: Sessions touched within this window count as active
        checkpoint_max_age_hours: Checkpoints older than this cannot be restored
        checkpoint_retention_days: Checkpoints older than this are deleted
        checkpoint_db_path: SQLite database for checkpoints
        sweep_interval_seconds: Interval of the background expiry sweep
        subscriber_queue_size: Pending deliveries buffered per subscriber
        max_recovery_attempts: Default retry budget for session recovery
        recovery_notice_ms: Display duration of the "Session Recovered" notice
    """

    session_max_age_hours: float = 24.0
    active_window_minutes: float = 60.0
    checkpoint_max_age_hours: float = 24.0
    checkpoint_retention_days: float = 7.0
    checkpoint_db_path: str = "data/checkpoints/recovery.db"
    sweep_interval_seconds: float = 300.0
    subscriber_queue_size: int = 256
    max_recovery_attempts: int = 3
    recovery_notice_ms: int = 8000

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: If a value is out of range
        """
        positive = [
            "session_max_age_hours",
            "active_window_minutes",
            "checkpoint_max_age_hours",
            "checkpoint_retention_days",
            "sweep_interval_seconds",
            "subscriber_queue_size",
        ]
        for name in positive:
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

        if self.max_recovery_attempts < 0:
            raise ValueError(
                f"max_recovery_attempts must be >= 0, got {self.max_recovery_attempts}"
            )

        if not self.checkpoint_db_path:
            raise ValueError("checkpoint_db_path must not be empty")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecoveryConfig":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


def load_recovery_config(config_path: Optional[Path] = None) -> RecoveryConfig:
    """
    Load configuration.

    Priority:
        1. DOC_RECOVERY_* environment variables
        2. Configuration file ("recovery" section or top level)
        3. Defaults

    Args:
        config_path: Path to a YAML file (optional)

    Returns:
        RecoveryConfig instance
    """
    data: Dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
            data = loaded.get("recovery", loaded)
            logger.info(f"Loaded recovery config from {config_path}")
        else:
            logger.warning(f"Config file not found, using defaults: {config_path}")

    for env_name, (field_name, convert) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            data[field_name] = convert(value)

    return RecoveryConfig.from_dict(data)


# Process-wide configuration instance
_recovery_config: Optional[RecoveryConfig] = None


def get_recovery_config(config_path: Optional[Path] = None) -> RecoveryConfig:
    """
    Get the process-wide configuration, loading it on first use.

    Args:
        config_path: Optional path to configuration file

    Returns:
        RecoveryConfig instance
    """
    global _recovery_config

    if _recovery_config is None:
        _recovery_config = load_recovery_config(config_path)

    return _recovery_config
