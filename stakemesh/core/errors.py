"""
Error Hierarchy for the StakeMesh Betting Core

Design Principles:
- Expected outcomes (absence, expiry, trimming) are return values, not errors
- Errors are reserved for misconfiguration and lifecycle misuse
- Carry full error context for debugging and audit trails

Each error type includes:
- Unique error code for programmatic handling
- Human-readable message for logging
- Optional cause chain for root cause analysis

Usage:
    try:
        service = BettingService.from_config(config)
    except ConfigurationError as e:
        logger.error("bad config", extra=e.to_dict())
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from uuid import uuid4


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Configuration errors
    - 2xxx: Lifecycle errors
    """

    # Configuration errors (1xxx)
    CONFIG_INVALID_VALUE = 1001
    CONFIG_ENVIRONMENT = 1002

    # Lifecycle errors (2xxx)
    LIFECYCLE_ALREADY_STARTED = 2001
    LIFECYCLE_SHUT_DOWN = 2002


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass
class StakeMeshError(Exception):
    """
    Base class for all StakeMesh errors.

    Provides common infrastructure for error handling:
    - Unique error ID for log correlation
    - Error code for programmatic handling
    - Timestamp (wall-clock nanoseconds)
    - Cause chain for root cause analysis
    """

    code: ErrorCode
    message: str
    error_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp_ns: int = field(default_factory=time.time_ns)
    cause: Optional[Exception] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.cause is not None:
            self.__cause__ = self.cause

    def to_dict(self) -> dict[str, Any]:
        """Serialize error to dictionary for logging."""
        return {
            "error_id": self.error_id,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "timestamp_nanos": self.timestamp_ns,
            "context": self.context,
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (id={self.error_id[:8]})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r}, "
            f"error_id={self.error_id!r})"
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================
@dataclass
class ConfigurationError(StakeMeshError):
    """Invalid store, executor or observability settings."""

    @classmethod
    def invalid_value(
        cls,
        setting: str,
        value: Any,
        reason: str,
    ) -> ConfigurationError:
        """A setting is out of its allowed range."""
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{setting}': {reason}",
            context={"setting": setting, "value": str(value)[:100], "reason": reason},
        )

    @classmethod
    def environment(
        cls,
        reason: str,
        cause: Optional[Exception] = None,
    ) -> ConfigurationError:
        """Environment variables could not be parsed."""
        return cls(
            code=ErrorCode.CONFIG_ENVIRONMENT,
            message=f"Configuration error: {reason}",
            cause=cause,
            context={"reason": reason},
        )


# =============================================================================
# LIFECYCLE ERRORS
# =============================================================================
@dataclass
class LifecycleError(StakeMeshError):
    """
    Misuse of a component's start/stop lifecycle.

    Covers double starts of background workers and use after shutdown.
    """

    @classmethod
    def already_started(cls, component: str) -> LifecycleError:
        """Component was started twice."""
        return cls(
            code=ErrorCode.LIFECYCLE_ALREADY_STARTED,
            message=f"{component} is already running",
            context={"component": component},
        )

    @classmethod
    def shut_down(cls, component: str) -> LifecycleError:
        """Component was used after shutdown."""
        return cls(
            code=ErrorCode.LIFECYCLE_SHUT_DOWN,
            message=f"{component} has been shut down",
            context={"component": component},
        )
