"""Tests for the stage pipeline: ordering, fail-fast abort, and end-to-end runs."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from orsted.errors import ChartInstallError, CommandError
from orsted.orchestrator import (
    Pipeline,
    PipelineResult,
    Stage,
    StageResult,
    build_stages,
    check_prerequisites,
    run_bootstrap,
)
from orsted.utils import CommandResult

EXPECTED_ORDER = [
    "start-node-services",
    "init-control-plane",
    "wait-for-control-plane",
    "untaint-control-plane",
    "apply-gateway-crds",
    "add-chart-repositories",
    "discover-host-address",
    "install-cni",
    "install-policy-engine",
    "install-storage",
    "install-gitops",
    "apply-default-policies",
]


class TestBuildStages:
    """Tests for the canonical stage list."""

    def test_twelve_stages_in_order(self):
        """Test the stage names match the provisioning order."""
        assert [stage.name for stage in build_stages()] == EXPECTED_ORDER

    def test_every_stage_is_fatal(self):
        """Test no stage is optional."""
        assert all(stage.fatal for stage in build_stages())


class TestPipeline:
    """Tests for Pipeline.run with plain callables."""

    def test_runs_all_stages_in_order(self, ctx):
        """Test every stage runs once, in declaration order."""
        calls = []
        stages = [Stage(name, name, lambda c, name=name: calls.append(name)) for name in ("a", "b", "c")]

        result = Pipeline(stages).run(ctx)

        assert calls == ["a", "b", "c"]
        assert result.ok
        assert result.completed == ["a", "b", "c"]
        assert result.failed is None

    def test_stops_at_first_failure(self, ctx):
        """Test no stage after a failing one executes."""
        first, third = MagicMock(), MagicMock()
        failing = MagicMock(side_effect=CommandError("kubeadm init", 1, "preflight failed"))
        stages = [Stage("one", "one", first), Stage("two", "two", failing), Stage("three", "three", third)]

        result = Pipeline(stages).run(ctx)

        assert first.call_count == 1
        assert failing.call_count == 1
        assert third.call_count == 0
        assert not result.ok
        assert result.failed.name == "two"
        assert result.failed.output == "preflight failed"
        assert [r.name for r in result.results] == ["one", "two"]

    def test_failure_policy_cannot_be_relaxed(self):
        """Test a stage cannot be declared optional."""
        with pytest.raises(TypeError):
            Stage("optional", "optional", MagicMock(), fatal=False)

    def test_generic_error_stops_run(self, ctx):
        """Test an error without diagnostics aborts like a command failure."""
        after = MagicMock()
        stages = [
            Stage("first", "first", MagicMock(side_effect=RuntimeError("nope"))),
            Stage("after", "after", after),
        ]

        result = Pipeline(stages).run(ctx)

        assert after.call_count == 0
        assert result.failed.name == "first"
        assert result.completed == []

    def test_error_without_output(self, ctx):
        """Test errors that carry no diagnostics yield empty output."""
        stages = [Stage("boom", "boom", MagicMock(side_effect=ValueError("bad")))]

        result = Pipeline(stages).run(ctx)

        assert isinstance(result.failed.error, ValueError)
        assert result.failed.output == ""


class TestPipelineResult:
    """Tests for PipelineResult helpers."""

    def test_empty_result_is_ok(self):
        assert PipelineResult().ok

    def test_failed_returns_first_failure(self):
        result = PipelineResult([StageResult("a"), StageResult("b", error=RuntimeError("x")), StageResult("c")])
        assert result.failed.name == "b"
        assert result.completed == ["a", "c"]


class TestBootstrapEndToEnd:
    """End-to-end runs of the real stage list against in-memory collaborators."""

    def test_all_collaborators_succeed(self, ctx, state):
        """Test all twelve stages complete and every precondition holds."""
        result = run_bootstrap(ctx, skip_prerequisites=True)

        assert result.ok
        assert result.completed == EXPECTED_ORDER
        assert state.precondition_violations == []
        assert set(state.repositories) == {"cilium", "kyverno", "rook", "gitops"}
        assert {release for release, _ in state.releases} == {
            "cilium", "kyverno", "rook-ceph", "rook-ceph-cluster", "weave-gitops",
        }
        assert state.namespaces["rook-ceph"] == {"pod-security.kubernetes.io/enforce": "privileged"}

    def test_collaborator_call_order(self, ctx, state):
        """Test each dependency is satisfied before it is used."""
        run_bootstrap(ctx, skip_prerequisites=True)
        events = state.events

        def index(event):
            return events.index(event)

        assert index(("command", "systemctl enable")) < index(("command", "kubeadm init"))
        assert index(("command", "kubeadm init")) < index(("list_pods", "kube-system"))
        assert index(("list_pods", "kube-system")) < index(("command", "kubectl taint"))
        last_repo = max(i for i, e in enumerate(events) if e[0] == "add_repo")
        first_install = min(i for i, e in enumerate(events) if e[0] == "install")
        assert last_repo < first_install
        assert index(("discover_host",)) < index(("install", "cilium"))
        assert index(("install", "cilium")) < index(("create_namespace", "kyverno"))
        assert index(("create_namespace", "kyverno")) < index(("install", "kyverno"))
        assert index(("create_namespace", "rook-ceph")) < index(("install", "rook-ceph"))
        assert index(("install", "rook-ceph")) < index(("install", "rook-ceph-cluster"))
        assert index(("install", "rook-ceph-cluster")) < index(("create_namespace", "weave-gitops"))
        assert index(("create_namespace", "weave-gitops")) < index(("install", "weave-gitops"))
        # default policies are the last apply, after kyverno is installed
        last_event = events[-1]
        assert last_event == ("command", "kubectl apply")
        assert state.applied[-1] == str(ctx.config.default_policies)

    def test_storage_overrides_applied_before_operator(self, ctx, state):
        run_bootstrap(ctx, skip_prerequisites=True)

        overrides = str(ctx.config.storage_overrides)
        assert overrides in state.applied
        apply_events = [i for i, e in enumerate(state.events) if e == ("command", "kubectl apply")]
        assert any(
            state.events.index(("create_namespace", "rook-ceph")) < i < state.events.index(("install", "rook-ceph"))
            for i in apply_events
        )

    def test_readiness_polls_until_pods_listed(self, ctx, state, cluster):
        """Test two empty listings lead to three polls spaced by the interval."""
        state.pod_listings = [[], [], ["kube-apiserver"]]

        result = run_bootstrap(ctx, skip_prerequisites=True)

        assert result.ok
        assert cluster.list_calls == 3
        assert state.sleeps == [10, 10]
        assert state.names().index("list_pods") < state.events.index(("command", "kubectl taint"))

    def test_storage_operator_timeout_aborts(self, ctx, state):
        """Test a failed operator install stops before the storage cluster and GitOps."""
        state.failing_releases["rook-ceph"] = "context deadline exceeded"

        result = run_bootstrap(ctx, skip_prerequisites=True)

        assert not result.ok
        assert result.failed.name == "install-storage"
        assert isinstance(result.failed.error, ChartInstallError)
        assert result.completed == EXPECTED_ORDER[:9]
        assert ("install", "rook-ceph-cluster") not in state.events
        assert ("create_namespace", "weave-gitops") not in state.events
        assert ("install", "weave-gitops") not in state.events
        assert str(ctx.config.default_policies) not in state.applied

    @pytest.mark.parametrize(
        ("failing_key", "failed_stage"),
        [
            ("systemctl enable", "start-node-services"),
            ("kubeadm init", "init-control-plane"),
            ("kubectl taint", "untaint-control-plane"),
            ("kubectl apply", "apply-gateway-crds"),
        ],
    )
    def test_command_failure_aborts(self, ctx, state, failing_key, failed_stage):
        """Test a failing command stops the run at its stage with captured output."""
        program, first_arg = failing_key.split()
        state.failing_commands[failing_key] = CommandResult(program, (first_arg,), "error output", 1)

        result = run_bootstrap(ctx, skip_prerequisites=True)

        assert result.failed.name == failed_stage
        assert result.failed.output == "error output"
        assert result.results[-1].name == failed_stage
        assert state.releases == {}

    def test_namespace_conflict_is_fatal(self, ctx, state):
        """Test an existing namespace aborts the run instead of being reused."""
        state.namespaces["kyverno"] = {}

        result = run_bootstrap(ctx, skip_prerequisites=True)

        assert result.failed.name == "install-policy-engine"
        assert result.failed.error.status == 409
        assert ("install", "kyverno") not in state.events

    def test_host_address_reaches_cni_values(self, ctx, state):
        run_bootstrap(ctx, skip_prerequisites=True)

        cilium = state.releases[("cilium", "kube-system")]
        assert "10.0.0.5" in cilium.values_yaml
        assert "K8SHOST" not in cilium.values_yaml


class TestCheckPrerequisites:
    """Tests for the PATH check."""

    def test_missing_command_raises(self):
        with patch("orsted.utils.shutil.which", return_value=None):
            with pytest.raises(RuntimeError, match="kubeadm"):
                check_prerequisites(["kubeadm"])

    def test_all_present(self):
        with patch("orsted.utils.shutil.which", return_value="/usr/bin/tool") as which:
            check_prerequisites(["kubeadm", "helm"])
        assert which.call_count == 2

    def test_run_bootstrap_checks_before_any_stage(self, ctx, state):
        with patch("orsted.utils.shutil.which", return_value=None):
            with pytest.raises(RuntimeError):
                run_bootstrap(ctx)
        assert state.events == []
