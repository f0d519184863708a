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

"""
cli.py - Bootstrap this host into a single-node Kubernetes cluster.

Runs with no flags: starts kubelet and CRI-O, runs kubeadm init, waits for
the API server, then installs Cilium, Kyverno, Rook Ceph and Weave GitOps.

Environment Variables:
    Host paths and readiness tuning can be overridden via ORSTED_* variables:
    - ORSTED_CLUSTER_CONFIG (default: /root/clusterconfig.yaml)
    - ORSTED_ADMIN_KUBECONFIG (default: /etc/kubernetes/admin.conf)
    - ORSTED_READINESS_INTERVAL (default: 10)
    - ORSTED_READINESS_MAX_ATTEMPTS (default: unbounded)
    - And more (see BootstrapConfig for the full list)

Examples:
    # Full bootstrap
    orsted

    # Show the stage plan without touching the host
    orsted --list-stages
"""

from __future__ import annotations

import logging
import sys

import typer
from rich.markup import escape

from orsted import console
from orsted.config import BootstrapConfig, display_config
from orsted.context import BootstrapContext
from orsted.orchestrator import build_stages, display_stages, run_bootstrap

app = typer.Typer(help="Bootstrap this host into a single-node Kubernetes cluster.")


@app.command()
def main(
    list_stages: bool = typer.Option(
        False, "--list-stages", help="Print the provisioning stages and exit"),
    skip_prerequisites: bool = typer.Option(
        False, "--skip-prerequisites", help="Skip checking required tools on PATH"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Provision the cluster. Exits non-zero on the first failed stage."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )

    if list_stages:
        display_stages(build_stages())
        return

    cfg = BootstrapConfig()
    display_config(cfg)

    try:
        result = run_bootstrap(BootstrapContext(cfg), skip_prerequisites=skip_prerequisites)
    except Exception as e:
        console.print(f"[red]\u274c {escape(str(e))}[/red]")
        sys.exit(1)

    failed = result.failed
    if failed is not None:
        if failed.output:
            console.print(failed.output, markup=False, highlight=False)
        console.print(f"[red]\u274c Stage '{failed.name}' failed: {escape(str(failed.error))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    app()
