"""Cluster pool cleanup controller package."""

from .config import CleanupConfig, ControllerContext  # noqa: F401
from .kube import ClusterPoolStore  # noqa: F401
from .reconciler import ClusterPoolReconciler, FinalizerState  # noqa: F401

__all__ = [
    "CleanupConfig",
    "ControllerContext",
    "ClusterPoolStore",
    "ClusterPoolReconciler",
    "FinalizerState",
]
