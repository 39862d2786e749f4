"""Low-level Kubernetes client helpers for cluster pool cleanup."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from kubernetes import client, config
from kubernetes.client import ApiException
from kubernetes.config import ConfigException
from kubernetes.dynamic import DynamicClient, ResourceInstance

from .config import ControllerContext
from .resources.clusterpool import CLUSTERPOOL_API_VERSION, CLUSTERPOOL_KIND, ClusterPool
from .utils import create_merge_patch


_LOG = logging.getLogger(__name__)


def is_not_found(exc: ApiException) -> bool:
    return exc.status == 404


def _build_api_client(context: ControllerContext) -> client.ApiClient:
    try:
        api_client = config.new_client_from_config(
            config_file=context.kubeconfig,
            context=context.context,
        )
    except ConfigException:
        if context.kubeconfig or context.context:
            raise
        _LOG.debug("No kubeconfig found; using in-cluster configuration")
        configuration = client.Configuration()
        config.load_incluster_config(client_configuration=configuration)
        api_client = client.ApiClient(configuration)
    api_client.configuration.verify_ssl = context.verify_ssl
    return api_client


def _as_dict(obj: Any) -> Dict[str, Any]:
    return obj.to_dict() if isinstance(obj, ResourceInstance) else obj


class ClusterPoolStore:
    """Wrapper around the Kubernetes clients exposing the calls cleanup needs."""

    def __init__(self, context: ControllerContext) -> None:
        self.context = context
        api_client = _build_api_client(context)
        self.api_client = api_client
        self.dynamic = DynamicClient(api_client)
        self.core_v1 = client.CoreV1Api(api_client)

    @property
    def _cluster_pools(self) -> Any:
        return self.dynamic.resources.get(api_version=CLUSTERPOOL_API_VERSION, kind=CLUSTERPOOL_KIND)

    def get_cluster_pool(self, namespace: str, name: str) -> ClusterPool:
        """Fetch a cluster pool. A missing pool raises ``ApiException`` with status 404."""

        instance = self._cluster_pools.get(name=name, namespace=namespace)
        return ClusterPool.from_dict(_as_dict(instance))

    def list_cluster_pools(self, namespace: str) -> List[ClusterPool]:
        result = _as_dict(self._cluster_pools.get(namespace=namespace))
        return [ClusterPool.from_dict(item) for item in result.get("items") or []]

    def patch_cluster_pool(self, pool: ClusterPool, base: ClusterPool) -> ClusterPool:
        """Send the merge patch that turns ``base`` into ``pool``."""

        patch_body = create_merge_patch(base.to_dict(), pool.to_dict())
        if not patch_body:
            _LOG.debug("Nothing to patch on ClusterPool %s", pool.key)
            return pool
        _LOG.debug("Patching ClusterPool %s with %s", pool.key, patch_body)
        patched = self._cluster_pools.patch(
            name=pool.name,
            namespace=pool.namespace,
            body=patch_body,
            content_type="application/merge-patch+json",
        )
        return ClusterPool.from_dict(_as_dict(patched))

    def update_cluster_pool(self, pool: ClusterPool) -> ClusterPool:
        """Replace the stored pool. A stale ``resourceVersion`` raises a 409 ``ApiException``."""

        _LOG.debug("Updating ClusterPool %s", pool.key)
        updated = self._cluster_pools.replace(
            name=pool.name,
            namespace=pool.namespace,
            body=pool.to_dict(),
        )
        return ClusterPool.from_dict(_as_dict(updated))

    def get_secret(self, namespace: str, name: str) -> client.V1Secret:
        return self.core_v1.read_namespaced_secret(name, namespace)

    def delete_secret(self, namespace: str, name: str) -> None:
        """Delete a secret if it exists."""

        try:
            self.core_v1.delete_namespaced_secret(name, namespace)
        except ApiException as exc:
            if not is_not_found(exc):
                raise
            _LOG.debug("Secret %s/%s not found during delete", namespace, name)

    def get_namespace(self, name: str) -> client.V1Namespace:
        return self.core_v1.read_namespace(name)

    def delete_namespace(self, name: str) -> None:
        """Delete a namespace if it exists."""

        try:
            self.core_v1.delete_namespace(name)
        except ApiException as exc:
            if not is_not_found(exc):
                raise
            _LOG.debug("Namespace %s not found during delete", name)
