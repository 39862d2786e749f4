from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from kubernetes import client
from kubernetes.client import ApiException

from clusterpool_cleanup.config import CleanupConfig
from clusterpool_cleanup.reconciler import ClusterPoolReconciler
from clusterpool_cleanup.resources.clusterpool import ClusterPool
from clusterpool_cleanup.utils import create_merge_patch

MANAGED = {"open-cluster-management.io/managed-by": "clusterpools"}


def make_pool(
    name: str,
    namespace: str = "ns1",
    platform: Optional[str] = "aws",
    pull: Optional[str] = "p1",
    install: Optional[str] = "i1",
    cred: Optional[str] = "c1",
    finalizers: Optional[List[str]] = None,
    deleting: bool = False,
) -> Dict[str, Any]:
    spec: Dict[str, Any] = {"size": 1, "imageSetRef": {"name": "img4.14"}}
    if pull:
        spec["pullSecretRef"] = {"name": pull}
    if install:
        spec["installConfigSecretTemplateRef"] = {"name": install}
    if platform:
        block: Dict[str, Any] = {"region": "us-east-1"}
        if cred:
            block["credentialsSecretRef"] = {"name": cred}
        spec["platform"] = {platform: block}
    metadata: Dict[str, Any] = {
        "name": name,
        "namespace": namespace,
        "resourceVersion": "1",
        "finalizers": list(finalizers or []),
    }
    if deleting:
        metadata["deletionTimestamp"] = "2024-01-01T00:00:00Z"
    return {
        "apiVersion": "hive.openshift.io/v1",
        "kind": "ClusterPool",
        "metadata": metadata,
        "spec": spec,
    }


def not_found() -> ApiException:
    return ApiException(status=404, reason="Not Found")


class FakeStore:
    """In-memory stand-in for ClusterPoolStore that behaves like the API server."""

    def __init__(self) -> None:
        self.pools: Dict[tuple, Dict[str, Any]] = {}
        self.secrets: Dict[tuple, client.V1Secret] = {}
        self.namespaces: Dict[str, client.V1Namespace] = {}
        self.calls: List[tuple] = []
        self.patches: List[Dict[str, Any]] = []
        self.failures: Dict[tuple, ApiException] = {}

    # fixtures

    def add_pool(self, body: Dict[str, Any]) -> None:
        meta = body["metadata"]
        self.pools[(meta["namespace"], meta["name"])] = body

    def add_secret(self, namespace: str, name: str) -> None:
        self.secrets[(namespace, name)] = client.V1Secret(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace)
        )

    def add_namespace(self, name: str, labels: Optional[Dict[str, str]] = None) -> None:
        self.namespaces[name] = client.V1Namespace(metadata=client.V1ObjectMeta(name=name, labels=labels))

    def mark_deleting(self, namespace: str, name: str) -> None:
        meta = self.pools[(namespace, name)]["metadata"]
        meta["deletionTimestamp"] = "2024-01-01T00:00:00Z"
        self._bump(meta)

    def fail(self, operation: str, *args: str, status: int = 500) -> None:
        self.failures[(operation, *args)] = ApiException(status=status, reason="Injected")

    def _call(self, operation: str, *args: str) -> None:
        self.calls.append((operation, *args))
        failure = self.failures.get((operation, *args))
        if failure is not None:
            raise failure

    @staticmethod
    def _bump(meta: Dict[str, Any]) -> None:
        meta["resourceVersion"] = str(int(meta.get("resourceVersion") or "0") + 1)

    # store contract

    def get_cluster_pool(self, namespace: str, name: str) -> ClusterPool:
        self._call("get_cluster_pool", namespace, name)
        body = self.pools.get((namespace, name))
        if body is None:
            raise not_found()
        return ClusterPool.from_dict(body)

    def list_cluster_pools(self, namespace: str) -> List[ClusterPool]:
        self._call("list_cluster_pools", namespace)
        return [ClusterPool.from_dict(body) for (ns, _), body in sorted(self.pools.items()) if ns == namespace]

    def patch_cluster_pool(self, pool: ClusterPool, base: ClusterPool) -> ClusterPool:
        self._call("patch_cluster_pool", pool.namespace, pool.name)
        stored = self.pools[(pool.namespace, pool.name)]
        patch = create_merge_patch(base.to_dict(), pool.to_dict())
        self.patches.append(patch)
        for key, value in patch.get("metadata", {}).items():
            stored["metadata"][key] = value
        self._bump(stored["metadata"])
        return ClusterPool.from_dict(stored)

    def update_cluster_pool(self, pool: ClusterPool) -> ClusterPool:
        self._call("update_cluster_pool", pool.namespace, pool.name)
        key = (pool.namespace, pool.name)
        stored = self.pools[key]
        if stored["metadata"]["resourceVersion"] != pool.resource_version:
            raise ApiException(status=409, reason="Conflict")
        body = pool.to_dict()
        self._bump(body["metadata"])
        if body["metadata"].get("deletionTimestamp") and not body["metadata"].get("finalizers"):
            del self.pools[key]
        else:
            self.pools[key] = body
        return ClusterPool.from_dict(body)

    def get_secret(self, namespace: str, name: str) -> client.V1Secret:
        self._call("get_secret", namespace, name)
        secret = self.secrets.get((namespace, name))
        if secret is None:
            raise not_found()
        return secret

    def delete_secret(self, namespace: str, name: str) -> None:
        self._call("delete_secret", namespace, name)
        self.secrets.pop((namespace, name), None)

    def get_namespace(self, name: str) -> client.V1Namespace:
        self._call("get_namespace", name)
        namespace = self.namespaces.get(name)
        if namespace is None:
            raise not_found()
        return namespace

    def delete_namespace(self, name: str) -> None:
        self._call("delete_namespace", name)
        self.namespaces.pop(name, None)

    def deletions(self) -> List[tuple]:
        return [call for call in self.calls if call[0].startswith("delete_")]


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def settings() -> CleanupConfig:
    return CleanupConfig()


@pytest.fixture
def reconciler(store: FakeStore, settings: CleanupConfig) -> ClusterPoolReconciler:
    return ClusterPoolReconciler(store, settings)
