"""Finalizer-gated reconciliation of ClusterPool objects."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from kubernetes.client import ApiException

from .config import CleanupConfig
from .kube import ClusterPoolStore, is_not_found
from .operations.teardown import TeardownOperations
from .resources.clusterpool import ClusterPool

_LOG = logging.getLogger(__name__)


class FinalizerState(str, Enum):
    NO_FINALIZER = "NoFinalizer"
    FINALIZER_SET = "FinalizerSet"
    DELETING = "Deleting"
    GONE = "Gone"


def classify(pool: Optional[ClusterPool], finalizer: str) -> FinalizerState:
    """Map an observed pool onto the controller's finalizer lifecycle."""

    if pool is None:
        return FinalizerState.GONE
    if pool.is_deleting:
        return FinalizerState.DELETING
    if pool.has_finalizer(finalizer):
        return FinalizerState.FINALIZER_SET
    return FinalizerState.NO_FINALIZER


class ClusterPoolReconciler:
    """Reconcile a ClusterPool, mainly for the delete."""

    def __init__(self, store: ClusterPoolStore, settings: CleanupConfig) -> None:
        self.store = store
        self.settings = settings
        self.teardown = TeardownOperations(store, settings)

    @property
    def finalizer(self) -> str:
        return self.settings.finalizer

    def reconcile(self, namespace: str, name: str) -> FinalizerState:
        """Drive one pool a step through its lifecycle and return the state it ends in.

        Store errors propagate so the dispatcher can retry the whole reconcile.
        """

        try:
            pool = self.store.get_cluster_pool(namespace, name)
        except ApiException as exc:
            if not is_not_found(exc):
                raise
            _LOG.info("Resource deleted: %s/%s", namespace, name)
            return FinalizerState.GONE

        state = classify(pool, self.finalizer)
        if state is FinalizerState.FINALIZER_SET:
            return state

        _LOG.info("Reconcile cluster pool: %s", pool.key)
        if state is FinalizerState.DELETING:
            self.teardown.release_resources(pool)
            self.remove_finalizer(pool)
            return FinalizerState.GONE

        self.set_finalizer(pool)
        return FinalizerState.FINALIZER_SET

    def set_finalizer(self, pool: ClusterPool) -> ClusterPool:
        if pool.has_finalizer(self.finalizer):
            return pool
        return self.store.patch_cluster_pool(pool.with_finalizer(self.finalizer), base=pool)

    def remove_finalizer(self, pool: ClusterPool) -> ClusterPool:
        if not pool.has_finalizer(self.finalizer):
            return pool
        updated = self.store.update_cluster_pool(pool.without_finalizer(self.finalizer))
        _LOG.info("Removed finalizer on cluster pool: %s", pool.name)
        return updated
