from typer.testing import CliRunner

from conftest import make_pool
from clusterpool_cleanup import cli
from clusterpool_cleanup.cli import app
from clusterpool_cleanup.reconciler import ClusterPoolReconciler


runner = CliRunner()


def test_top_level_commands_present() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("run", "reconcile", "references"):
        assert command in result.stdout


def test_references_reports_shared_secrets(monkeypatch, store) -> None:
    store.add_pool(make_pool("a", pull="p1", install="i1", cred="c1"))
    store.add_pool(make_pool("b", pull="p1", install="i2", cred="c2"))
    monkeypatch.setattr(cli, "_create_reconciler", lambda settings: ClusterPoolReconciler(store, settings))

    result = runner.invoke(app, ["references", "ns1", "a"])

    assert result.exit_code == 0
    assert "ClusterPool ns1/a (aws)" in result.stdout
    assert "pull secret" in result.stdout
    assert "other cluster pools remain" in result.stdout
    assert store.deletions() == []


def test_reconcile_prints_end_state(monkeypatch, store) -> None:
    store.add_pool(make_pool("a"))
    monkeypatch.setattr(cli, "_create_reconciler", lambda settings: ClusterPoolReconciler(store, settings))

    result = runner.invoke(app, ["reconcile", "ns1", "a"])

    assert result.exit_code == 0
    assert "FinalizerSet" in result.stdout


def test_reconcile_exits_with_message_on_store_error(monkeypatch, store) -> None:
    store.add_pool(make_pool("a"))
    store.fail("get_cluster_pool", "ns1", "a", status=403)
    monkeypatch.setattr(cli, "_create_reconciler", lambda settings: ClusterPoolReconciler(store, settings))

    result = runner.invoke(app, ["reconcile", "ns1", "a"])

    assert result.exit_code == 1
    assert "Reconcile of ClusterPool ns1/a failed: 403" in result.output


def test_references_exits_with_message_when_pool_missing(monkeypatch, store) -> None:
    monkeypatch.setattr(cli, "_create_reconciler", lambda settings: ClusterPoolReconciler(store, settings))

    result = runner.invoke(app, ["references", "ns1", "absent"])

    assert result.exit_code == 1
    assert "ClusterPool ns1/absent not found." in result.output
