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

"""Constants, dependency loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

# -- Resolved paths --
PACKAGE_DIR = Path(__file__).resolve().parent
VALUES_DIR = PACKAGE_DIR / "values"


def load_dependencies() -> dict:
    """Load pinned chart versions and repositories from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = PACKAGE_DIR / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


READINESS_POLL_INTERVAL_SECONDS = 10

# -- Host files --
DEFAULT_CLUSTER_CONFIG = "/root/clusterconfig.yaml"
DEFAULT_ADMIN_KUBECONFIG = "/etc/kubernetes/admin.conf"
DEFAULT_STORAGE_OVERRIDES = "/root/rook-overrides.yaml"
DEFAULT_POLICIES = "/root/default-policies.yaml"
DEFAULT_HELM_REPOSITORY_CACHE = "/tmp/.helmcache"
DEFAULT_HELM_REPOSITORY_CONFIG = "/tmp/.helmrepo"

# -- Node services --
NODE_SERVICES = ("kubelet", "crio")
CONTROL_PLANE_TAINT = "node-role.kubernetes.io/control-plane:NoSchedule-"
REQUIRED_COMMANDS = ("systemctl", "kubeadm", "kubectl", "helm")

# -- Host address discovery --
HOST_PROBE_ADDRESS = ("1.1.1.1", 80)
HOST_ADDRESS_PLACEHOLDER = "K8SHOST"

# -- Namespaces --
NS_KUBE_SYSTEM = "kube-system"
NS_KYVERNO = "kyverno"
NS_ROOK_CEPH = "rook-ceph"
NS_WEAVE_GITOPS = "weave-gitops"

# -- Labels --
LABEL_POD_SECURITY_ENFORCE = "pod-security.kubernetes.io/enforce"

# -- Helm releases --
HELM_RELEASE_CILIUM = "cilium"
HELM_RELEASE_KYVERNO = "kyverno"
HELM_RELEASE_ROOK_OPERATOR = "rook-ceph"
HELM_RELEASE_ROOK_CLUSTER = "rook-ceph-cluster"
HELM_RELEASE_WEAVE_GITOPS = "weave-gitops"

# -- Helm timeouts (seconds) --
CILIUM_TIMEOUT = 7 * 60
KYVERNO_TIMEOUT = 4 * 60
ROOK_OPERATOR_TIMEOUT = 2 * 60
ROOK_CLUSTER_TIMEOUT = 5 * 60
WEAVE_GITOPS_TIMEOUT = 15 * 60

# -- Values payloads --
VALUES_CILIUM = "cilium.yaml"
VALUES_ROOK_OPERATOR = "rook-op.yaml"
VALUES_ROOK_CLUSTER = "rook-cluster.yaml"
VALUES_WEAVE_GITOPS = "weave.yaml"

# -- Gateway API --
DEFAULT_GATEWAY_API_VERSION = "v0.7.1"
GATEWAY_API_BASE_URL = "https://raw.githubusercontent.com/kubernetes-sigs/gateway-api"
GATEWAY_API_CRDS = (
    "standard/gateway.networking.k8s.io_gatewayclasses.yaml",
    "standard/gateway.networking.k8s.io_gateways.yaml",
    "standard/gateway.networking.k8s.io_httproutes.yaml",
    "standard/gateway.networking.k8s.io_referencegrants.yaml",
    "experimental/gateway.networking.k8s.io_tlsroutes.yaml",
)
