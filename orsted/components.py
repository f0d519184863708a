# /*
# Copyright 2026 The Orsted Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Node services, control plane, and add-on installation steps."""

from __future__ import annotations

import socket

from orsted import console
from orsted.constants import (
    CILIUM_TIMEOUT,
    CONTROL_PLANE_TAINT,
    DEPENDENCIES,
    GATEWAY_API_BASE_URL,
    GATEWAY_API_CRDS,
    HELM_RELEASE_CILIUM,
    HELM_RELEASE_KYVERNO,
    HELM_RELEASE_ROOK_CLUSTER,
    HELM_RELEASE_ROOK_OPERATOR,
    HELM_RELEASE_WEAVE_GITOPS,
    KYVERNO_TIMEOUT,
    LABEL_POD_SECURITY_ENFORCE,
    NODE_SERVICES,
    NS_KUBE_SYSTEM,
    NS_KYVERNO,
    NS_ROOK_CEPH,
    NS_WEAVE_GITOPS,
    ROOK_CLUSTER_TIMEOUT,
    ROOK_OPERATOR_TIMEOUT,
    VALUES_CILIUM,
    VALUES_DIR,
    VALUES_ROOK_CLUSTER,
    VALUES_ROOK_OPERATOR,
    VALUES_WEAVE_GITOPS,
    WEAVE_GITOPS_TIMEOUT,
    dep_value,
)
from orsted.context import BootstrapContext
from orsted.helm import ChartInstallSpec, RepositoryEntry
from orsted.readiness import wait_for_control_plane
from orsted.utils import render_values


def load_values(name: str) -> str:
    """Read a bundled chart values payload.

    Args:
        name: File name under the package ``values`` directory.
    """
    return (VALUES_DIR / name).read_text()


def chart_repositories() -> list[RepositoryEntry]:
    """Chart repositories registered before any install."""
    return [RepositoryEntry(repo["name"], repo["url"]) for repo in DEPENDENCIES["repositories"]]


def gateway_crd_urls(version: str) -> list[str]:
    return [f"{GATEWAY_API_BASE_URL}/{version}/config/crd/{path}" for path in GATEWAY_API_CRDS]


# ============================================================================
# Chart specs
# ============================================================================

def cilium_spec(host_address: str) -> ChartInstallSpec:
    return ChartInstallSpec(
        release_name=HELM_RELEASE_CILIUM,
        chart=dep_value("charts", "cilium", "chart"),
        namespace=NS_KUBE_SYSTEM,
        version=dep_value("charts", "cilium", "version"),
        values_yaml=render_values(load_values(VALUES_CILIUM), host_address),
        timeout=CILIUM_TIMEOUT,
    )


def kyverno_spec() -> ChartInstallSpec:
    return ChartInstallSpec(
        release_name=HELM_RELEASE_KYVERNO,
        chart=dep_value("charts", "kyverno", "chart"),
        namespace=NS_KYVERNO,
        version=dep_value("charts", "kyverno", "version"),
        timeout=KYVERNO_TIMEOUT,
    )


def rook_operator_spec() -> ChartInstallSpec:
    return ChartInstallSpec(
        release_name=HELM_RELEASE_ROOK_OPERATOR,
        chart=dep_value("charts", "rook_ceph", "chart"),
        namespace=NS_ROOK_CEPH,
        version=dep_value("charts", "rook_ceph", "version"),
        values_yaml=load_values(VALUES_ROOK_OPERATOR),
        timeout=ROOK_OPERATOR_TIMEOUT,
    )


def rook_cluster_spec() -> ChartInstallSpec:
    return ChartInstallSpec(
        release_name=HELM_RELEASE_ROOK_CLUSTER,
        chart=dep_value("charts", "rook_ceph_cluster", "chart"),
        namespace=NS_ROOK_CEPH,
        version=dep_value("charts", "rook_ceph_cluster", "version"),
        values_yaml=load_values(VALUES_ROOK_CLUSTER),
        timeout=ROOK_CLUSTER_TIMEOUT,
    )


def weave_gitops_spec() -> ChartInstallSpec:
    return ChartInstallSpec(
        release_name=HELM_RELEASE_WEAVE_GITOPS,
        chart=dep_value("charts", "weave_gitops", "chart"),
        namespace=NS_WEAVE_GITOPS,
        version=dep_value("charts", "weave_gitops", "version"),
        values_yaml=load_values(VALUES_WEAVE_GITOPS),
        timeout=WEAVE_GITOPS_TIMEOUT,
    )


def build_chart_specs(host_address: str) -> list[ChartInstallSpec]:
    """All releases in install order.

    Raises:
        ValueError: If two specs share a release name and namespace.
    """
    specs = [
        cilium_spec(host_address),
        kyverno_spec(),
        rook_operator_spec(),
        rook_cluster_spec(),
        weave_gitops_spec(),
    ]
    seen: set[tuple[str, str]] = set()
    for spec in specs:
        key = (spec.release_name, spec.namespace)
        if key in seen:
            raise ValueError(f"Duplicate release {spec.release_name} in namespace {spec.namespace}")
        seen.add(key)
    return specs


def _install(ctx: BootstrapContext, spec: ChartInstallSpec) -> None:
    console.print(f"[yellow]\u2139\ufe0f  Installing {spec.release_name} ({spec.chart}), timeout {spec.timeout}s...[/yellow]")
    ctx.chart_installer(spec.namespace).install_or_upgrade(spec)
    console.print(f"[green]\u2705 {spec.release_name} installed[/green]")


def _create_namespace(ctx: BootstrapContext, name: str, labels: dict[str, str] | None = None) -> None:
    console.print(f"[yellow]\u2139\ufe0f  Creating {name} namespace[/yellow]")
    ctx.cluster.create_namespace(name, labels)


def _kubectl_apply(ctx: BootstrapContext, *sources: str) -> None:
    args = ["apply", "--kubeconfig", str(ctx.config.admin_kubeconfig)]
    for source in sources:
        args += ["-f", source]
    ctx.run_command("kubectl", *args).check()


# ============================================================================
# Node and control plane
# ============================================================================

def start_node_services(ctx: BootstrapContext) -> None:
    """Enable and start the kubelet and container runtime."""
    ctx.run_command("systemctl", "enable", "--now", *NODE_SERVICES).check()
    console.print("[green]\u2705 Kubelet and CRI-O started[/green]")


def init_control_plane(ctx: BootstrapContext) -> None:
    """Run kubeadm init against the static cluster configuration."""
    ctx.run_command("kubeadm", "init", "--config", str(ctx.config.cluster_config)).check()
    console.print("[green]\u2705 Control plane initialized[/green]")


def wait_for_api(ctx: BootstrapContext) -> None:
    """Block until the API server lists system pods."""
    cfg = ctx.config
    wait_for_control_plane(
        ctx.cluster,
        cfg.system_namespace,
        cfg.readiness_interval,
        max_attempts=cfg.readiness_max_attempts,
        max_wait=cfg.readiness_max_wait,
        cancel=ctx.cancel,
        sleep=ctx.sleep,
    )
    console.print("[green]\u2705 Kubernetes API ready[/green]")


def untaint_control_plane(ctx: BootstrapContext) -> None:
    """Allow workloads on the only node by removing the control-plane taint."""
    node = socket.getfqdn()
    ctx.run_command(
        "kubectl", "taint", "nodes", node, CONTROL_PLANE_TAINT,
        "--kubeconfig", str(ctx.config.admin_kubeconfig),
    ).check()
    console.print(f"[green]\u2705 Removed control-plane taint from {node}[/green]")


def apply_gateway_crds(ctx: BootstrapContext) -> None:
    _kubectl_apply(ctx, *gateway_crd_urls(ctx.config.gateway_api_version))
    console.print("[green]\u2705 Gateway API CRDs applied[/green]")


def add_chart_repositories(ctx: BootstrapContext) -> None:
    installer = ctx.chart_installer("default")
    for entry in chart_repositories():
        installer.add_or_update_repo(entry)
        console.print(f"[green]  \u2713 {entry.name} ({entry.url})[/green]")


def discover_host(ctx: BootstrapContext) -> None:
    """Resolve the host address and render every release against it."""
    ctx.host_address = ctx.resolve_host_address()
    ctx.store_chart_specs(build_chart_specs(ctx.host_address))
    console.print(f"[yellow]Default IP: {ctx.host_address}[/yellow]")


# ============================================================================
# Add-ons
# ============================================================================

def install_cni(ctx: BootstrapContext) -> None:
    _install(ctx, ctx.chart_spec(HELM_RELEASE_CILIUM))


def install_policy_engine(ctx: BootstrapContext) -> None:
    _create_namespace(ctx, NS_KYVERNO)
    _install(ctx, ctx.chart_spec(HELM_RELEASE_KYVERNO))


def install_storage(ctx: BootstrapContext) -> None:
    """Install the storage operator, then the storage cluster it reconciles.

    Both releases wait for their workloads, so the cluster chart only starts
    once the operator is running.
    """
    _create_namespace(ctx, NS_ROOK_CEPH, {LABEL_POD_SECURITY_ENFORCE: "privileged"})
    _kubectl_apply(ctx, str(ctx.config.storage_overrides))
    _install(ctx, ctx.chart_spec(HELM_RELEASE_ROOK_OPERATOR))
    _install(ctx, ctx.chart_spec(HELM_RELEASE_ROOK_CLUSTER))


def install_gitops(ctx: BootstrapContext) -> None:
    _create_namespace(ctx, NS_WEAVE_GITOPS)
    _install(ctx, ctx.chart_spec(HELM_RELEASE_WEAVE_GITOPS))


def apply_default_policies(ctx: BootstrapContext) -> None:
    _kubectl_apply(ctx, str(ctx.config.default_policies))
    console.print("[green]\u2705 Default policies applied[/green]")
