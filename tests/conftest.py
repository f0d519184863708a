"""Shared test fixtures for orsted tests.

This module provides in-memory stand-ins for the pipeline's collaborators:
- FakeRunner: records commands and returns scripted results
- FakeCluster: namespaces and scripted pod listings
- FakeChartInstaller: repositories and releases, checking install preconditions
All fakes append to one ordered event log so tests can assert call order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from kubernetes.client import ApiException

from orsted.config import BootstrapConfig
from orsted.context import BootstrapContext
from orsted.errors import ChartInstallError
from orsted.helm import ChartInstallSpec, RepositoryEntry
from orsted.utils import CommandResult

HOST_ADDRESS = "10.0.0.5"


@dataclass
class ClusterState:
    """Everything the fakes know about the simulated host and cluster."""

    events: list[tuple[str, ...]] = field(default_factory=list)
    namespaces: dict[str, dict[str, str]] = field(default_factory=lambda: {"kube-system": {}, "default": {}})
    repositories: dict[str, str] = field(default_factory=dict)
    releases: dict[tuple[str, str], ChartInstallSpec] = field(default_factory=dict)
    applied: list[str] = field(default_factory=list)
    sleeps: list[float] = field(default_factory=list)
    pod_listings: list[Any] = field(default_factory=list)
    failing_commands: dict[str, CommandResult] = field(default_factory=dict)
    failing_releases: dict[str, str] = field(default_factory=dict)
    precondition_violations: list[str] = field(default_factory=list)

    def names(self) -> list[str]:
        return [event[0] for event in self.events]


class FakeRunner:
    """Command runner that records every invocation.

    A command fails when its program plus first argument (e.g. ``kubeadm init``)
    is a key in ``state.failing_commands``.
    """

    def __init__(self, state: ClusterState) -> None:
        self.state = state

    def __call__(self, program: str, *args: str) -> CommandResult:
        key = " ".join([program, *args[:1]])
        self.state.events.append(("command", key))
        if key in self.state.failing_commands:
            return self.state.failing_commands[key]
        if program == "kubectl" and args and args[0] == "apply":
            sources = [args[i + 1] for i, arg in enumerate(args) if arg == "-f"]
            self.state.applied.extend(sources)
        return CommandResult(program, args, "", 0)


class FakeCluster:
    def __init__(self, state: ClusterState) -> None:
        self.state = state
        self.list_calls = 0

    def create_namespace(self, name: str, labels: dict[str, str] | None = None):
        self.state.events.append(("create_namespace", name))
        if name in self.state.namespaces:
            raise ApiException(status=409, reason="AlreadyExists")
        self.state.namespaces[name] = dict(labels or {})
        return name

    def list_pods(self, namespace: str, label_selector: str | None = None) -> list:
        self.list_calls += 1
        self.state.events.append(("list_pods", namespace))
        if self.state.pod_listings:
            outcome = self.state.pod_listings.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return ["kube-apiserver"]


class FakeChartInstaller:
    def __init__(self, state: ClusterState, namespace: str) -> None:
        self.state = state
        self.namespace = namespace

    def add_or_update_repo(self, entry: RepositoryEntry) -> None:
        self.state.events.append(("add_repo", entry.name))
        self.state.repositories[entry.name] = entry.url

    def install_or_upgrade(self, spec: ChartInstallSpec) -> str:
        self.state.events.append(("install", spec.release_name))
        repo = spec.chart.split("/", 1)[0]
        if repo not in self.state.repositories:
            self.state.precondition_violations.append(f"{spec.release_name}: repository {repo} missing")
        if spec.namespace not in self.state.namespaces:
            self.state.precondition_violations.append(f"{spec.release_name}: namespace {spec.namespace} missing")
        if spec.release_name in self.state.failing_releases:
            raise ChartInstallError(self.state.failing_releases[spec.release_name], "timed out waiting for the condition")
        self.state.releases[(spec.release_name, spec.namespace)] = spec
        return f"Release \"{spec.release_name}\" has been upgraded. Happy Helming!"


@pytest.fixture
def state() -> ClusterState:
    return ClusterState()


@pytest.fixture
def config(tmp_path: Path) -> BootstrapConfig:
    return BootstrapConfig(
        cluster_config=tmp_path / "clusterconfig.yaml",
        admin_kubeconfig=tmp_path / "admin.conf",
        storage_overrides=tmp_path / "rook-overrides.yaml",
        default_policies=tmp_path / "default-policies.yaml",
        helm_repository_cache=tmp_path / "helmcache",
        helm_repository_config=tmp_path / "helmrepo",
        readiness_interval=10,
    )


@pytest.fixture
def cluster(state: ClusterState) -> FakeCluster:
    return FakeCluster(state)


@pytest.fixture
def ctx(state: ClusterState, config: BootstrapConfig, cluster: FakeCluster) -> BootstrapContext:
    def resolve_host() -> str:
        state.events.append(("discover_host",))
        return HOST_ADDRESS

    return BootstrapContext(
        config,
        run_command=FakeRunner(state),
        cluster_factory=lambda credentials: cluster,
        chart_installer_factory=lambda cfg, namespace, runner: FakeChartInstaller(state, namespace),
        resolve_host_address=resolve_host,
        sleep=state.sleeps.append,
    )
