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

"""Admin credentials and the typed Kubernetes API handle."""

from __future__ import annotations

from functools import cached_property
from pathlib import Path

import yaml
from kubernetes import client, config

from orsted import logger


class ClusterCredentials:
    """Admin kubeconfig for the run, read from disk at most once.

    The file only exists after ``kubeadm init``, so it is loaded on first use
    rather than at construction.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @cached_property
    def kubeconfig(self) -> dict:
        """Parsed kubeconfig document."""
        logger.debug("Reading admin kubeconfig from %s", self.path)
        with open(self.path) as f:
            return yaml.safe_load(f)


class ClusterClient:
    """Thin wrapper over CoreV1Api for the calls the pipeline needs."""

    def __init__(self, core_api: client.CoreV1Api) -> None:
        self._core = core_api

    @classmethod
    def from_credentials(cls, credentials: ClusterCredentials) -> ClusterClient:
        """Build a client from the cached admin kubeconfig.

        Args:
            credentials: Run credentials holding the parsed kubeconfig.
        """
        api_client = config.new_client_from_config_dict(credentials.kubeconfig)
        return cls(client.CoreV1Api(api_client))

    def create_namespace(self, name: str, labels: dict[str, str] | None = None) -> client.V1Namespace:
        """Create a namespace.

        Args:
            name: Namespace name.
            labels: Optional namespace labels.

        Returns:
            The created namespace object.

        Raises:
            kubernetes.client.ApiException: On any API error, including 409 if it already exists.
        """
        body = client.V1Namespace(
            api_version="v1",
            kind="Namespace",
            metadata=client.V1ObjectMeta(name=name, labels=labels or None),
        )
        return self._core.create_namespace(body)

    def list_pods(self, namespace: str, label_selector: str | None = None) -> list[client.V1Pod]:
        """List pods in a namespace.

        Args:
            namespace: Namespace to list.
            label_selector: Optional label selector filter.

        Returns:
            The pods found, possibly empty.
        """
        kwargs = {"label_selector": label_selector} if label_selector else {}
        return list(self._core.list_namespaced_pod(namespace, **kwargs).items)
