"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StoreConfig:
    """Persistence settings consumed by meeting store adapters."""

    backend: str
    db_path: str
    timeout_seconds: float


@dataclass(frozen=True)
class MeetingConfig:
    """Meeting code and retention settings."""

    code_length: int = 6
    code_alphabet: str = "digits"
    max_code_attempts: int = 10
    inactivity_hours: int = 24
    sweep_interval_minutes: int = 60
