"""Reference-counted teardown of the resources a deleted cluster pool leaves behind.

Pools in one namespace may point at the same pull, install-config and
provider credential secrets. When a pool goes away, only the secrets that no
surviving sibling references are removed, and a managed namespace is removed
once its last pool is gone.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from kubernetes.client import ApiException

from ..config import CleanupConfig
from ..kube import ClusterPoolStore, is_not_found
from ..resources.clusterpool import ClusterPool
from ..resources.secret import SecretRef, SecretSlot

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeardownPlan:
    """What releasing a pool would remove, given its siblings at list time."""

    pool: ClusterPool
    shared: Dict[SecretSlot, bool]
    secrets: Tuple[SecretRef, ...] = field(default_factory=tuple)
    last_pool_in_namespace: bool = False

    @property
    def namespace(self) -> str:
        return self.pool.namespace


def _slot_names(pool: ClusterPool) -> List[Tuple[SecretSlot, Optional[str]]]:
    return [
        (SecretSlot.INSTALL_CONFIG, pool.install_config_secret_name),
        (SecretSlot.PULL, pool.pull_secret_name),
        (SecretSlot.PROVIDER_CREDENTIALS, pool.platform.credentials_secret_name),
    ]


def plan_teardown(pool: ClusterPool, pools: Iterable[ClusterPool]) -> TeardownPlan:
    """Work out which of ``pool``'s secrets are still referenced by a sibling.

    ``pools`` is every pool listed in the namespace, ``pool`` included. Siblings
    are told apart by name. Provider credentials only count as shared between
    pools on the same platform kind.
    """

    pools = list(pools)
    shared = {slot: False for slot in SecretSlot}
    for sibling in pools:
        if sibling.name == pool.name:
            continue
        if pool.pull_secret_name and sibling.pull_secret_name == pool.pull_secret_name:
            shared[SecretSlot.PULL] = True
        if (
            pool.install_config_secret_name
            and sibling.install_config_secret_name == pool.install_config_secret_name
        ):
            shared[SecretSlot.INSTALL_CONFIG] = True
        if pool.platform.shares_credentials_with(sibling.platform):
            shared[SecretSlot.PROVIDER_CREDENTIALS] = True

    secrets = tuple(
        SecretRef(slot=slot, namespace=pool.namespace, name=name)
        for slot, name in _slot_names(pool)
        if name and not shared[slot]
    )
    return TeardownPlan(
        pool=pool,
        shared=shared,
        secrets=secrets,
        last_pool_in_namespace=len(pools) == 1,
    )


class TeardownOperations:
    """Release the secrets and namespace a deleted cluster pool no longer needs."""

    def __init__(self, store: ClusterPoolStore, settings: CleanupConfig) -> None:
        self.store = store
        self.settings = settings

    def plan(self, pool: ClusterPool) -> Optional[TeardownPlan]:
        """List the pool's siblings and plan its teardown.

        Returns ``None`` when the namespace no longer exists.
        """

        try:
            pools = self.store.list_cluster_pools(pool.namespace)
        except ApiException as exc:
            if is_not_found(exc):
                _LOG.info("No Cluster Pools found in namespace %s", pool.namespace)
                return None
            raise
        plan = plan_teardown(pool, pools)
        _LOG.info(
            "Secrets found, install-config: %s, Pull secret: %s, Provider credential: %s",
            plan.shared[SecretSlot.INSTALL_CONFIG],
            plan.shared[SecretSlot.PULL],
            plan.shared[SecretSlot.PROVIDER_CREDENTIALS],
        )
        _LOG.debug("providerSecretName: %s", pool.platform.credentials_secret_name or "")
        _LOG.info("Cluster Pools found in namespace %s: %d", pool.namespace, len(pools))
        return plan

    def release_resources(self, pool: ClusterPool) -> Optional[TeardownPlan]:
        """Delete every unshared secret of ``pool`` and, if it was the last pool, its managed namespace.

        Safe to repeat: resources that are already gone are skipped. Errors other
        than not-found abort the teardown and propagate to the caller.
        """

        plan = self.plan(pool)
        if plan is None:
            return None
        for secret in plan.secrets:
            self._delete_secret(secret)
        if plan.last_pool_in_namespace:
            self._delete_managed_namespace(plan.namespace)
        return plan

    def _delete_secret(self, secret: SecretRef) -> bool:
        try:
            self.store.get_secret(secret.namespace, secret.name)
        except ApiException as exc:
            if is_not_found(exc):
                _LOG.debug("%s %s already absent", secret.slot.label.capitalize(), secret.name)
                return False
            raise
        self.store.delete_secret(secret.namespace, secret.name)
        _LOG.info("Deleted %s: %s", secret.slot.label, secret.name)
        return True

    def is_managed_namespace(self, labels: Optional[Dict[str, str]]) -> bool:
        return (labels or {}).get(self.settings.managed_label_key) == self.settings.managed_label_value

    def _delete_managed_namespace(self, name: str) -> bool:
        try:
            namespace = self.store.get_namespace(name)
        except ApiException as exc:
            if is_not_found(exc):
                _LOG.debug("Namespace %s already absent", name)
                return False
            raise
        labels = namespace.metadata.labels if namespace.metadata else None
        if not self.is_managed_namespace(labels):
            _LOG.info("Did not delete namespace: %s it is still in use", name)
            return False
        self.store.delete_namespace(name)
        _LOG.info("Deleted namespace: %s", name)
        return True
