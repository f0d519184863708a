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

"""Per-run state shared by reference across pipeline stages."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from orsted.cluster import ClusterClient, ClusterCredentials
from orsted.config import BootstrapConfig
from orsted.helm import ChartInstaller, ChartInstallSpec
from orsted.utils import CommandResult, discover_host_address, run_command


def _default_chart_installer(
    cfg: BootstrapConfig, namespace: str, runner: Callable[..., CommandResult],
) -> ChartInstaller:
    return ChartInstaller(
        namespace,
        kubeconfig=cfg.admin_kubeconfig,
        repository_cache=cfg.helm_repository_cache,
        repository_config=cfg.helm_repository_config,
        runner=runner,
    )


@dataclass
class BootstrapContext:
    """Collaborators and discovered values for one bootstrap run.

    Attributes:
        config: Resolved configuration.
        credentials: Admin kubeconfig, read at most once.
        run_command: Command runner used by command stages.
        cluster_factory: Builds the API client once credentials exist.
        chart_installer_factory: Builds a namespace-bound chart installer.
        resolve_host_address: Returns the host's outward-facing IP.
        sleep: Sleep used between readiness polls.
        cancel: Optional event that stops readiness polling when set.
    """

    config: BootstrapConfig
    credentials: ClusterCredentials | None = None
    run_command: Callable[..., CommandResult] = run_command
    cluster_factory: Callable[[ClusterCredentials], ClusterClient] = ClusterClient.from_credentials
    chart_installer_factory: Callable[..., ChartInstaller] = _default_chart_installer
    resolve_host_address: Callable[[], str] = discover_host_address
    sleep: Callable[[float], None] = time.sleep
    cancel: threading.Event | None = None
    _cluster: ClusterClient | None = field(default=None, init=False, repr=False)
    _host_address: str | None = field(default=None, init=False, repr=False)
    _chart_specs: dict[str, ChartInstallSpec] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.credentials is None:
            self.credentials = ClusterCredentials(self.config.admin_kubeconfig)

    @property
    def cluster(self) -> ClusterClient:
        """API client, created on first use after the control plane exists."""
        if self._cluster is None:
            self._cluster = self.cluster_factory(self.credentials)
        return self._cluster

    def chart_installer(self, namespace: str) -> ChartInstaller:
        return self.chart_installer_factory(self.config, namespace, self.run_command)

    @property
    def host_address(self) -> str:
        if self._host_address is None:
            raise RuntimeError("Host address has not been discovered yet")
        return self._host_address

    @host_address.setter
    def host_address(self, value: str) -> None:
        if self._host_address is not None:
            raise RuntimeError("Host address is already set")
        self._host_address = value

    def store_chart_specs(self, specs: list[ChartInstallSpec]) -> None:
        """Keep the rendered releases for the install stages."""
        self._chart_specs = {spec.release_name: spec for spec in specs}

    def chart_spec(self, release_name: str) -> ChartInstallSpec:
        try:
            return self._chart_specs[release_name]
        except KeyError:
            raise RuntimeError(f"Chart spec for {release_name} has not been rendered yet") from None
