"""Tests for the command line interface."""

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner
from kubernetes.client.rest import ApiException

from podreaper.cli import main
from podreaper.cluster.client import ClusterSnapshot
from podreaper.errors import SnapshotError


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_cluster(make_pod, web_min2_budget):
    """Patch ClusterClient with a namespace holding one safe web pod."""
    pods = [
        make_pod("web-0", {"app": "web"}),
        make_pod("web-1", {"app": "web"}),
        make_pod("web-2", {"app": "web"}),
        make_pod("agent", {"app": "web"}, owners=[("DaemonSet", "agent")]),
    ]
    cluster = MagicMock()
    cluster.snapshot.return_value = ClusterSnapshot(
        namespace="shop", pods=pods, budgets=[web_min2_budget]
    )
    with patch("podreaper.cli.ClusterClient", return_value=cluster) as factory:
        yield factory, cluster


class TestKill:
    """Tests for `podreaper kill`."""

    def test_deletes_one_safe_pod(self, runner, fake_cluster):
        factory, cluster = fake_cluster
        result = runner.invoke(main, ["kill", "-n", "shop", "-l", "app=web"])

        assert result.exit_code == 0, result.output
        factory.assert_called_once_with("shop", timeout=10)
        cluster.core_api.delete_namespaced_pod.assert_called_once()
        name, namespace = cluster.core_api.delete_namespaced_pod.call_args[0]
        assert name in {"web-0", "web-1", "web-2"}
        assert namespace == "shop"
        assert "removed" in result.output

    def test_evict_mode(self, runner, fake_cluster):
        _, cluster = fake_cluster
        result = runner.invoke(main, ["kill", "-n", "shop", "-l", "app=web", "--mode", "evict"])
        assert result.exit_code == 0, result.output
        cluster.core_api.create_namespaced_pod_eviction.assert_called_once()
        cluster.core_api.delete_namespaced_pod.assert_not_called()
        assert "re-checks PodDisruptionBudgets" in result.output

    def test_dry_run_removes_nothing(self, runner, fake_cluster):
        _, cluster = fake_cluster
        result = runner.invoke(main, ["kill", "-n", "shop", "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "Dry run" in result.output
        cluster.core_api.delete_namespaced_pod.assert_not_called()

    def test_nothing_eligible_exits_zero(self, runner, fake_cluster):
        _, cluster = fake_cluster
        result = runner.invoke(main, ["kill", "-n", "shop", "-l", "app=db"])
        assert result.exit_code == 0, result.output
        assert "No eligible pod" in result.output
        cluster.core_api.delete_namespaced_pod.assert_not_called()

    def test_json_report(self, runner, fake_cluster):
        result = runner.invoke(main, ["kill", "-n", "shop", "-l", "app=web", "--dry-run", "--json"])
        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report["namespace"] == "shop"
        assert report["chosen"]["name"] in {"web-0", "web-1", "web-2"}
        assert report["verdicts"]["agent"]["rule"] == "protection"
        assert report["summary"]["outcome"] == "selected"

    def test_report_file(self, runner, fake_cluster, tmp_path):
        out = tmp_path / "report.json"
        result = runner.invoke(main, ["kill", "-n", "shop", "--dry-run", "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert json.loads(out.read_text())["namespace"] == "shop"

    def test_bad_selector_aborts_before_cluster(self, runner, fake_cluster):
        factory, _ = fake_cluster
        result = runner.invoke(main, ["kill", "-n", "shop", "-l", "app in (web"])
        assert result.exit_code == 1
        factory.assert_not_called()

    def test_snapshot_failure(self, runner, fake_cluster):
        _, cluster = fake_cluster
        cluster.snapshot.side_effect = SnapshotError("failed to list pods")
        result = runner.invoke(main, ["kill", "-n", "shop"])
        assert result.exit_code == 1

    def test_removal_failure(self, runner, fake_cluster):
        _, cluster = fake_cluster
        cluster.core_api.delete_namespaced_pod.side_effect = ApiException(status=404, reason="Not Found")
        result = runner.invoke(main, ["kill", "-n", "shop", "-l", "app=web"])
        assert result.exit_code == 1
        # No automatic retry on another candidate
        assert cluster.core_api.delete_namespaced_pod.call_count == 1

    def test_config_file(self, runner, fake_cluster, tmp_path):
        factory, cluster = fake_cluster
        config_file = tmp_path / "podreaper.yaml"
        config_file.write_text("namespace: shop\nselector: app=web\nmode: evict\ntimeout: 3\n")
        result = runner.invoke(main, ["kill", "-c", str(config_file)])
        assert result.exit_code == 0, result.output
        factory.assert_called_once_with("shop", timeout=3)
        cluster.core_api.create_namespaced_pod_eviction.assert_called_once()

    def test_invalid_config(self, runner, fake_cluster, tmp_path):
        config_file = tmp_path / "podreaper.yaml"
        config_file.write_text("mode: nuke\n")
        result = runner.invoke(main, ["kill", "-c", str(config_file)])
        assert result.exit_code == 1

    def test_protected_namespace_refused(self, runner, fake_cluster):
        factory, _ = fake_cluster
        result = runner.invoke(main, ["kill", "-n", "kube-system"])
        assert result.exit_code == 1
        assert "kube-system" in result.output
        factory.assert_not_called()


class TestCheck:
    """Tests for `podreaper check`."""

    def test_lists_verdicts(self, runner, fake_cluster):
        _, cluster = fake_cluster
        result = runner.invoke(main, ["check", "-n", "shop", "-l", "app=web"])
        assert result.exit_code == 0, result.output
        assert "BLOCKED agent: daemon-managed" in result.output
        assert "Safe to disrupt: 3 of 4" in result.output
        cluster.core_api.delete_namespaced_pod.assert_not_called()

    def test_protected_namespace_shows_verdicts(self, runner, fake_cluster, make_pod):
        _, cluster = fake_cluster
        cluster.snapshot.return_value = ClusterSnapshot(
            namespace="kube-system",
            pods=[make_pod("coredns-0", {"k8s-app": "kube-dns"}, namespace="kube-system")],
        )
        result = runner.invoke(main, ["check", "-n", "kube-system"])
        assert result.exit_code == 0, result.output
        assert "BLOCKED coredns-0: system-namespace" in result.output

    def test_json(self, runner, fake_cluster):
        result = runner.invoke(main, ["check", "-n", "shop", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert sorted(data["eligible"]) == ["web-0", "web-1", "web-2"]
        assert data["chosen"] is None


class TestBudgets:
    """Tests for `podreaper budgets`."""

    def test_status(self, runner, fake_cluster):
        result = runner.invoke(main, ["budgets", "-n", "shop"])
        assert result.exit_code == 0, result.output
        assert "web-pdb: matched=4 currentHealthy=4 desiredHealthy=2 allowedDisruptions=2" in result.output

    def test_protected_namespace_readable(self, runner, fake_cluster):
        factory, _ = fake_cluster
        result = runner.invoke(main, ["budgets", "-n", "kube-system"])
        assert result.exit_code == 0, result.output
        factory.assert_called_once_with("kube-system", timeout=10)

    def test_json_with_skipped(self, runner, fake_cluster, broken_budget):
        _, cluster = fake_cluster
        cluster.snapshot.return_value.budgets.append(broken_budget)
        result = runner.invoke(main, ["budgets", "-n", "shop", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [b["name"] for b in data["budgets"]] == ["web-pdb"]
        assert data["skipped"][0]["name"] == "broken-pdb"
