"""
Core module: Type definitions, error hierarchy, and configuration.

This module provides the foundational abstractions for the betting core:
- Result/Either monad for configuration loading
- Error hierarchy for misconfiguration and lifecycle misuse
- Configuration management with validation
"""

from stakemesh.core.types import (
    Result,
    Ok,
    Err,
    CustomerId,
    OfferId,
    Stake,
    Token,
    Clock,
    MillisClock,
)
from stakemesh.core.errors import (
    ErrorCode,
    StakeMeshError,
    ConfigurationError,
    LifecycleError,
)
from stakemesh.core.config import (
    StakeMeshConfig,
    SessionConfig,
    LeaderboardConfig,
    ExecutorConfig,
    ObservabilityConfig,
)

__all__ = [
    # Result monad
    "Result",
    "Ok",
    "Err",
    # Identifiers
    "CustomerId",
    "OfferId",
    "Stake",
    "Token",
    "Clock",
    "MillisClock",
    # Errors
    "ErrorCode",
    "StakeMeshError",
    "ConfigurationError",
    "LifecycleError",
    # Config
    "StakeMeshConfig",
    "SessionConfig",
    "LeaderboardConfig",
    "ExecutorConfig",
    "ObservabilityConfig",
]
