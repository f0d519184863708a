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

"""Control-plane readiness polling."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Protocol

from kubernetes.client import ApiException
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    stop_any,
    stop_never,
    stop_when_event_set,
    wait_fixed,
)
from urllib3.exceptions import HTTPError

from orsted import logger
from orsted.errors import ReadinessTimeout

# Anything the API client raises while the API server is still coming up.
TRANSIENT_ERRORS = (ApiException, HTTPError, OSError)


class PodLister(Protocol):
    def list_pods(self, namespace: str, label_selector: str | None = None) -> list: ...


def _log_not_ready(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    if outcome is not None and outcome.failed:
        reason = outcome.exception()
    else:
        reason = "no system pods yet"
    logger.info("Kubernetes not yet ready (attempt %d): %s", retry_state.attempt_number, reason)


def wait_for_control_plane(
    cluster: PodLister,
    namespace: str,
    interval: float,
    *,
    max_attempts: int | None = None,
    max_wait: float | None = None,
    cancel: threading.Event | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list:
    """Poll the system namespace until at least one pod is listed.

    Transport errors and empty listings are both "not ready yet". With no
    ceiling configured the loop only ends on success or process termination.

    Args:
        cluster: Client exposing ``list_pods``.
        namespace: Namespace whose pods signal readiness.
        interval: Fixed seconds between attempts.
        max_attempts: Optional attempt ceiling.
        max_wait: Optional ceiling in seconds since the first attempt.
        cancel: Optional event that stops polling when set.
        sleep: Sleep function, replaceable in tests.

    Returns:
        The non-empty pod list from the successful attempt.

    Raises:
        ReadinessTimeout: If a ceiling is reached or polling is cancelled.
    """
    stops = []
    if max_attempts is not None:
        stops.append(stop_after_attempt(max_attempts))
    if max_wait is not None:
        stops.append(stop_after_delay(max_wait))
    if cancel is not None:
        stops.append(stop_when_event_set(cancel))

    retrying = Retrying(
        stop=stop_any(*stops) if stops else stop_never,
        wait=wait_fixed(interval),
        retry=retry_if_exception_type(TRANSIENT_ERRORS) | retry_if_result(lambda pods: not pods),
        before_sleep=_log_not_ready,
        sleep=sleep,
    )
    try:
        pods = retrying(cluster.list_pods, namespace)
    except RetryError as err:
        attempts = err.last_attempt.attempt_number
        raise ReadinessTimeout(f"Control plane not ready after {attempts} attempts") from err
    logger.info("Kubernetes ready: %d pods in %s", len(pods), namespace)
    return pods
