"""Command line entry point for the cluster pool cleanup controller."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from kubernetes.client import ApiException
from rich import box
from rich import print as rich_print
from rich.logging import RichHandler
from rich.table import Table

from .config import CleanupConfig
from .kube import ClusterPoolStore, is_not_found
from .reconciler import ClusterPoolReconciler
from .resources.secret import SecretSlot

app = typer.Typer(help="Release the secrets and namespaces of deleted Hive cluster pools.")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, log_time_format="%X")],
    )


def _load_config(
    config_path: Optional[Path],
    kube_context: Optional[str],
    kubeconfig: Optional[Path],
) -> CleanupConfig:
    settings = CleanupConfig.from_file(config_path) if config_path else CleanupConfig()
    if kube_context:
        settings.context.context = kube_context
    if kubeconfig:
        settings.context.kubeconfig = str(kubeconfig)
    return settings


def _create_reconciler(settings: CleanupConfig) -> ClusterPoolReconciler:
    return ClusterPoolReconciler(ClusterPoolStore(settings.context), settings)


@app.command("run")
def run(
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to the controller configuration file."),
    namespaces: Optional[List[str]] = typer.Option(
        None, "--namespace", "-n", help="Watch only this namespace. Repeat for several; omit to watch all."
    ),
    kube_context: Optional[str] = typer.Option(None, "--context", help="Override kubeconfig context."),
    kubeconfig: Optional[Path] = typer.Option(None, help="Path to kubeconfig file."),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    """Start the controller and process ClusterPool events until interrupted."""

    from .handlers import run as run_controller

    _configure_logging(verbose)
    settings = _load_config(config_path, kube_context, kubeconfig)
    if namespaces:
        settings.context.namespaces = list(namespaces)
    run_controller(settings)


@app.command("reconcile")
def reconcile(
    namespace: str = typer.Argument(..., help="Namespace of the ClusterPool."),
    name: str = typer.Argument(..., help="Name of the ClusterPool."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to the controller configuration file."),
    kube_context: Optional[str] = typer.Option(None, "--context", help="Override kubeconfig context."),
    kubeconfig: Optional[Path] = typer.Option(None, help="Path to kubeconfig file."),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    """Reconcile a single ClusterPool once."""

    _configure_logging(verbose)
    reconciler = _create_reconciler(_load_config(config_path, kube_context, kubeconfig))
    try:
        state = reconciler.reconcile(namespace, name)
    except ApiException as exc:
        raise typer.Exit(f"Reconcile of ClusterPool {namespace}/{name} failed: {exc.status} {exc.reason}")
    rich_print(f"[green]ClusterPool {namespace}/{name}: {state.value}[/green]")


@app.command("references")
def references(
    namespace: str = typer.Argument(..., help="Namespace of the ClusterPool."),
    name: str = typer.Argument(..., help="Name of the ClusterPool."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to the controller configuration file."),
    kube_context: Optional[str] = typer.Option(None, "--context", help="Override kubeconfig context."),
    kubeconfig: Optional[Path] = typer.Option(None, help="Path to kubeconfig file."),
) -> None:
    """Show which secrets deleting a ClusterPool would release. Changes nothing."""

    reconciler = _create_reconciler(_load_config(config_path, kube_context, kubeconfig))
    try:
        pool = reconciler.store.get_cluster_pool(namespace, name)
        plan = reconciler.teardown.plan(pool)
    except ApiException as exc:
        if is_not_found(exc):
            raise typer.Exit(f"ClusterPool {namespace}/{name} not found.")
        raise typer.Exit(f"Could not read ClusterPool {namespace}/{name}: {exc.status} {exc.reason}")
    if plan is None:
        rich_print(f"[yellow]Namespace {namespace} has no cluster pools.[/yellow]")
        raise typer.Exit(code=1)

    names = {
        SecretSlot.INSTALL_CONFIG: pool.install_config_secret_name,
        SecretSlot.PULL: pool.pull_secret_name,
        SecretSlot.PROVIDER_CREDENTIALS: pool.platform.credentials_secret_name,
    }
    released = {secret.slot for secret in plan.secrets}

    table = Table(title=f"ClusterPool {namespace}/{name} ({pool.platform.kind.value})", box=box.SIMPLE)
    table.add_column("Secret")
    table.add_column("Name")
    table.add_column("Shared")
    table.add_column("Released on delete")
    for slot in SecretSlot:
        table.add_row(
            slot.label,
            names[slot] or "-",
            "yes" if plan.shared[slot] else "no",
            "yes" if slot in released else "no",
        )
    rich_print(table)
    if plan.last_pool_in_namespace:
        rich_print(f"Namespace {namespace} is removed on delete if labelled as managed.")
    else:
        rich_print(f"Namespace {namespace} is kept: other cluster pools remain.")


if __name__ == "__main__":  # pragma: no cover
    app()
