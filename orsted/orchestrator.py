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

"""Orchestration of the provisioning stages into one fail-fast pipeline."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from rich.panel import Panel
from rich.table import Table

from orsted import components, console, logger
from orsted.constants import REQUIRED_COMMANDS
from orsted.context import BootstrapContext
from orsted.utils import require_command


@dataclass(frozen=True)
class Stage:
    """One provisioning step.

    Attributes:
        name: Stable identifier used in logs and results.
        description: Human-readable banner text.
        action: Callable doing the work; raises on failure.
        fatal: Failure policy; always True, every failure stops the pipeline.
    """

    name: str
    description: str
    action: Callable[[BootstrapContext], None]
    fatal: bool = field(default=True, init=False)


@dataclass(frozen=True)
class StageResult:
    """Outcome of running a single stage."""

    name: str
    error: BaseException | None = None
    output: str = ""
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PipelineResult:
    """Results of every stage that ran, in order."""

    results: list[StageResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(result.ok for result in self.results)

    @property
    def failed(self) -> StageResult | None:
        return next((result for result in self.results if not result.ok), None)

    @property
    def completed(self) -> list[str]:
        return [result.name for result in self.results if result.ok]


def build_stages() -> list[Stage]:
    """The canonical stage list in execution order."""
    return [
        Stage("start-node-services", "Enabling and starting kubelet and CRI-O", components.start_node_services),
        Stage("init-control-plane", "Initializing Kubernetes control plane", components.init_control_plane),
        Stage("wait-for-control-plane", "Waiting for Kubernetes API", components.wait_for_api),
        Stage("untaint-control-plane", "Untainting control-plane node", components.untaint_control_plane),
        Stage("apply-gateway-crds", "Creating Gateway API CRDs", components.apply_gateway_crds),
        Stage("add-chart-repositories", "Adding Helm repositories", components.add_chart_repositories),
        Stage("discover-host-address", "Discovering host address", components.discover_host),
        Stage("install-cni", "Deploying Cilium", components.install_cni),
        Stage("install-policy-engine", "Deploying Kyverno", components.install_policy_engine),
        Stage("install-storage", "Deploying Rook Ceph operator and cluster", components.install_storage),
        Stage("install-gitops", "Deploying Weave GitOps", components.install_gitops),
        Stage("apply-default-policies", "Installing default policies", components.apply_default_policies),
    ]


class Pipeline:
    """Runs stages strictly in order and stops at the first failure.

    Already-applied stages are never rolled back; re-running after a fix is
    the recovery path.
    """

    def __init__(self, stages: Sequence[Stage]) -> None:
        self.stages = list(stages)

    def run(self, ctx: BootstrapContext) -> PipelineResult:
        result = PipelineResult()
        for index, stage in enumerate(self.stages, start=1):
            console.print(Panel.fit(f"[{index}/{len(self.stages)}] {stage.description}", style="bold blue"))
            stage_result = self._run_stage(stage, ctx)
            result.results.append(stage_result)
            if not stage_result.ok:
                logger.error("Stage %s failed, aborting", stage.name)
                break
        return result

    @staticmethod
    def _run_stage(stage: Stage, ctx: BootstrapContext) -> StageResult:
        started = time.monotonic()
        try:
            stage.action(ctx)
        except Exception as err:
            return StageResult(
                stage.name,
                error=err,
                output=getattr(err, "output", ""),
                elapsed=time.monotonic() - started,
            )
        elapsed = time.monotonic() - started
        logger.info("Stage %s finished in %.1fs", stage.name, elapsed)
        return StageResult(stage.name, elapsed=elapsed)


def check_prerequisites(commands: Sequence[str] = REQUIRED_COMMANDS) -> None:
    """Verify every binary the pipeline shells out to is on PATH.

    Raises:
        RuntimeError: If a command is missing.
    """
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    for cmd in commands:
        require_command(cmd)
    console.print("[green]\u2705 All required tools are available[/green]")


def display_stages(stages: Sequence[Stage]) -> None:
    table = Table(title="Provisioning stages", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Stage")
    table.add_column("Description")
    for index, stage in enumerate(stages, start=1):
        table.add_row(str(index), stage.name, stage.description)
    console.print(table)


def run_bootstrap(ctx: BootstrapContext, *, skip_prerequisites: bool = False) -> PipelineResult:
    """Run the full bootstrap pipeline against this host.

    Args:
        ctx: Run context with config and collaborators.
        skip_prerequisites: Whether to skip the PATH check for required tools.

    Returns:
        Per-stage results; ``ok`` is False if a stage failed.

    Raises:
        RuntimeError: If a required command is missing.
    """
    if not skip_prerequisites:
        check_prerequisites()
    result = Pipeline(build_stages()).run(ctx)
    if result.ok:
        console.print("[green]\u2705 Successfully initialized Kubernetes cluster[/green]")
    return result
