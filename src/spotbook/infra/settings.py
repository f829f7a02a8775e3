"""Engine settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_HOLD_HOURS = 48
DEFAULT_MAX_HOLD_HOURS = 720
DEFAULT_SWEEP_INTERVAL_SECONDS = 120
DEFAULT_SWEEP_BATCH_SIZE = 500


@dataclass(frozen=True)
class EngineSettings:
    """Reservation engine tunables.

    Attributes:
        default_hold_hours: Hold length applied when a request omits it.
        max_hold_hours: Longest hold the HTTP layer accepts on create/update.
        sweep_interval_seconds: Pause between two expiration sweeps.
        sweep_batch_size: Max reservations claimed per tenant per sweep pass.
    """

    default_hold_hours: int = DEFAULT_HOLD_HOURS
    max_hold_hours: int = DEFAULT_MAX_HOLD_HOURS
    sweep_interval_seconds: int = DEFAULT_SWEEP_INTERVAL_SECONDS
    sweep_batch_size: int = DEFAULT_SWEEP_BATCH_SIZE


def _positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def get_settings() -> EngineSettings:
    """Load engine settings from environment.

    Read on every call so tests can monkeypatch the environment.

    Raises:
        RuntimeError: If a variable is set to a non-positive or non-integer value.
    """
    settings = EngineSettings(
        default_hold_hours=_positive_int("RESERVATION_DEFAULT_HOLD_HOURS", DEFAULT_HOLD_HOURS),
        max_hold_hours=_positive_int("RESERVATION_MAX_HOLD_HOURS", DEFAULT_MAX_HOLD_HOURS),
        sweep_interval_seconds=_positive_int(
            "SWEEP_INTERVAL_SECONDS", DEFAULT_SWEEP_INTERVAL_SECONDS
        ),
        sweep_batch_size=_positive_int("SWEEP_BATCH_SIZE", DEFAULT_SWEEP_BATCH_SIZE),
    )
    if settings.default_hold_hours > settings.max_hold_hours:
        raise RuntimeError(
            "RESERVATION_DEFAULT_HOLD_HOURS cannot exceed RESERVATION_MAX_HOLD_HOURS"
        )
    return settings
