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

"""Chart repository registration and release install/upgrade through the helm CLI."""

from __future__ import annotations

import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from orsted import logger
from orsted.errors import ChartInstallError
from orsted.utils import CommandResult, run_command


@dataclass(frozen=True)
class RepositoryEntry:
    """A named chart repository.

    Attributes:
        name: Local repository alias used in chart references (``<name>/<chart>``).
        url: Repository index URL.
    """

    name: str
    url: str


@dataclass(frozen=True)
class ChartInstallSpec:
    """Everything helm needs to install or upgrade one release.

    Attributes:
        release_name: Helm release name.
        chart: Chart reference, e.g. ``cilium/cilium``.
        namespace: Target namespace; must already exist.
        version: Chart version constraint, or None for latest.
        values_yaml: Raw values override payload.
        wait: Block until workloads report ready.
        wait_for_jobs: Block until hook and chart jobs complete.
        timeout: Seconds helm waits before giving up.
    """

    release_name: str
    chart: str
    namespace: str
    version: str | None = None
    values_yaml: str = ""
    wait: bool = True
    wait_for_jobs: bool = True
    timeout: int = 300


class ChartInstaller:
    """helm handle bound to one namespace and the admin kubeconfig."""

    def __init__(
        self,
        namespace: str,
        kubeconfig: Path,
        repository_cache: Path,
        repository_config: Path,
        runner: Callable[..., CommandResult] = run_command,
    ) -> None:
        self.namespace = namespace
        self._run = runner
        self._global_args = (
            "--kubeconfig", str(kubeconfig),
            "--repository-cache", str(repository_cache),
            "--repository-config", str(repository_config),
        )

    def _helm(self, *args: str) -> str:
        result = self._run("helm", *args, *self._global_args)
        if not result.ok:
            raise ChartInstallError(f"helm {args[0]} failed with exit code {result.exit_code}", result.output)
        return result.output

    def add_or_update_repo(self, entry: RepositoryEntry) -> None:
        """Register a chart repository and refresh its index.

        Args:
            entry: Repository to register.

        Raises:
            ChartInstallError: If helm cannot add or update the repository.
        """
        self._helm("repo", "add", entry.name, entry.url, "--force-update")
        self._helm("repo", "update", entry.name)

    def install_or_upgrade(self, spec: ChartInstallSpec) -> str:
        """Install the release, or upgrade it in place if it already exists.

        Args:
            spec: Release definition.

        Returns:
            helm's status output for the release.

        Raises:
            ChartInstallError: On install failure, including wait timeouts.
        """
        namespace = spec.namespace or self.namespace
        args = [
            "upgrade", "--install", spec.release_name, spec.chart,
            "--namespace", namespace,
            "--timeout", f"{spec.timeout}s",
        ]
        if spec.wait:
            args.append("--wait")
        if spec.wait_for_jobs:
            args.append("--wait-for-jobs")
        if spec.version:
            args += ["--version", spec.version]

        logger.debug("Installing release %s from %s into %s", spec.release_name, spec.chart, namespace)
        if not spec.values_yaml:
            return self._helm(*args)
        with tempfile.NamedTemporaryFile("w", prefix=f"{spec.release_name}-", suffix=".yaml") as values_file:
            values_file.write(spec.values_yaml)
            values_file.flush()
            return self._helm(*args, "--values", values_file.name)
