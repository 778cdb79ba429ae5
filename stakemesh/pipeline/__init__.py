"""
Pipeline module: Request intake with backpressure.
"""

from stakemesh.pipeline.backpressure import (
    BackpressureMetrics,
    BackpressureState,
    BoundedExecutor,
)

__all__ = [
    "BackpressureMetrics",
    "BackpressureState",
    "BoundedExecutor",
]
