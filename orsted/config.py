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

"""Bootstrap configuration and config display."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.table import Table

from orsted import console
from orsted.constants import (
    DEFAULT_ADMIN_KUBECONFIG,
    DEFAULT_CLUSTER_CONFIG,
    DEFAULT_GATEWAY_API_VERSION,
    DEFAULT_HELM_REPOSITORY_CACHE,
    DEFAULT_HELM_REPOSITORY_CONFIG,
    DEFAULT_POLICIES,
    DEFAULT_STORAGE_OVERRIDES,
    NS_KUBE_SYSTEM,
    READINESS_POLL_INTERVAL_SECONDS,
    dep_value,
)


class BootstrapConfig(BaseSettings):
    """Host paths and tuning for a bootstrap run, auto-loaded from ORSTED_* env vars.

    Attributes:
        cluster_config: kubeadm configuration file passed to ``kubeadm init``.
        admin_kubeconfig: Admin kubeconfig written by kubeadm.
        storage_overrides: Manifest applied before the storage operator chart.
        default_policies: Policy-engine manifest applied as the last stage.
        helm_repository_cache: helm ``--repository-cache`` directory.
        helm_repository_config: helm ``--repository-config`` file.
        system_namespace: Namespace polled for control-plane readiness.
        readiness_interval: Seconds between readiness polls.
        readiness_max_attempts: Poll attempt ceiling, or None for unbounded.
        readiness_max_wait: Poll deadline in seconds, or None for unbounded.
        gateway_api_version: Gateway API release whose CRDs are applied.
    """

    model_config = SettingsConfigDict(env_prefix="ORSTED_", extra="ignore")

    cluster_config: Path = Path(DEFAULT_CLUSTER_CONFIG)
    admin_kubeconfig: Path = Path(DEFAULT_ADMIN_KUBECONFIG)
    storage_overrides: Path = Path(DEFAULT_STORAGE_OVERRIDES)
    default_policies: Path = Path(DEFAULT_POLICIES)
    helm_repository_cache: Path = Path(DEFAULT_HELM_REPOSITORY_CACHE)
    helm_repository_config: Path = Path(DEFAULT_HELM_REPOSITORY_CONFIG)
    system_namespace: str = NS_KUBE_SYSTEM
    readiness_interval: float = Field(default=READINESS_POLL_INTERVAL_SECONDS, ge=1)
    readiness_max_attempts: int | None = Field(default=None, ge=1)
    readiness_max_wait: float | None = Field(default=None, gt=0)
    gateway_api_version: str = Field(
        default=dep_value("gateway_api", "version", default=DEFAULT_GATEWAY_API_VERSION),
        pattern=r"^v[\d.]+(-[\w.]+)?$",
    )


def display_config(cfg: BootstrapConfig) -> None:
    """Print the resolved configuration as a table.

    Args:
        cfg: Resolved bootstrap configuration.
    """
    table = Table(title="Bootstrap configuration", show_header=True, header_style="bold")
    table.add_column("Setting")
    table.add_column("Value")
    for name, value in cfg.model_dump().items():
        table.add_row(name, "unbounded" if value is None else str(value))
    console.print(table)
