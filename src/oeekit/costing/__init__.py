"""Costing helper exports."""

from .losses import DEFAULT_OEE_GOAL, LossResult, compute_losses, compute_losses_with, sum_losses

__all__ = [
    "DEFAULT_OEE_GOAL",
    "LossResult",
    "compute_losses",
    "compute_losses_with",
    "sum_losses",
]
