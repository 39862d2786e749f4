"""kopf handlers that deliver ClusterPool events to the reconciler.

Create, update and resume events dispatch a reconcile. kopf uses the
controller's finalizer token as its own, so it keeps the finalizer on every
live pool and reports the deletion marker as a deletion cause while that
finalizer blocks removal. Watch ``DELETED`` events carry nothing useful and
are never dispatched.
"""
from __future__ import annotations

import logging
from typing import Any

import kopf
from kubernetes.client import ApiException

from .config import CleanupConfig
from .kube import ClusterPoolStore
from .reconciler import ClusterPoolReconciler

CRD_GROUP = "hive.openshift.io"
CRD_VERSION = "v1"
CRD_PLURAL = "clusterpools"

_LOG = logging.getLogger(__name__)


def _reconciler(memo: Any) -> ClusterPoolReconciler:
    """Return the reconciler held in ``memo``, building it on first use."""

    reconciler = memo.get("reconciler")
    if reconciler is None:
        settings = memo.get("config") or CleanupConfig()
        reconciler = ClusterPoolReconciler(ClusterPoolStore(settings.context), settings)
        memo["reconciler"] = reconciler
    return reconciler


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, **kwargs: Any) -> None:
    reconciler = _reconciler(memo)
    cleanup = reconciler.settings
    # Sync handlers run in this executor; one worker means one reconcile in flight.
    settings.execution.max_workers = cleanup.max_concurrent_reconciles
    # Deletion causes are only detected while this finalizer is on the object.
    settings.persistence.finalizer = cleanup.finalizer
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix="clusterpools-controller.open-cluster-management.io"
    )
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix="clusterpools-controller.open-cluster-management.io",
        key="last-handled-configuration",
    )
    _LOG.info(
        "ClusterPool cleanup controller started (max_concurrent_reconciles=%d, finalizer=%s)",
        cleanup.max_concurrent_reconciles,
        cleanup.finalizer,
    )


@kopf.on.login()
def login(memo: kopf.Memo, **kwargs: Any) -> kopf.ConnectionInfo:
    """Authenticate kopf with the same credentials the resource store uses."""

    configuration = _reconciler(memo).store.api_client.configuration
    header = configuration.get_api_key_with_prefix("authorization") or ""
    scheme, _, token = header.partition(" ")
    return kopf.ConnectionInfo(
        server=configuration.host,
        ca_path=configuration.ssl_ca_cert,
        insecure=not configuration.verify_ssl,
        username=configuration.username or None,
        password=configuration.password or None,
        scheme=scheme or None,
        token=token or None,
        certificate_path=configuration.cert_file,
        private_key_path=configuration.key_file,
    )


def dispatch(memo: Any, namespace: str, name: str) -> None:
    """Run one reconcile; store failures become kopf retries."""

    reconciler = _reconciler(memo)
    try:
        state = reconciler.reconcile(namespace, name)
    except ApiException as exc:
        raise kopf.TemporaryError(
            f"Reconcile of ClusterPool {namespace}/{name} failed: {exc.status} {exc.reason}",
            delay=reconciler.settings.retry_delay,
        ) from exc
    _LOG.debug("ClusterPool %s/%s reconciled to %s", namespace, name, state.value)


@kopf.on.resume(CRD_GROUP, CRD_VERSION, CRD_PLURAL)
@kopf.on.create(CRD_GROUP, CRD_VERSION, CRD_PLURAL)
@kopf.on.update(CRD_GROUP, CRD_VERSION, CRD_PLURAL)
def reconcile_cluster_pool(namespace: str, name: str, memo: kopf.Memo, **kwargs: Any) -> None:
    dispatch(memo, namespace, name)


@kopf.on.delete(CRD_GROUP, CRD_VERSION, CRD_PLURAL)
def release_cluster_pool(namespace: str, name: str, memo: kopf.Memo, **kwargs: Any) -> None:
    dispatch(memo, namespace, name)


def run(settings: CleanupConfig) -> None:
    """Start the controller and block until it exits."""

    context = settings.context
    kopf.run(
        standalone=True,
        clusterwide=context.clusterwide,
        namespaces=context.namespaces,
        memo=kopf.Memo(config=settings),
    )
