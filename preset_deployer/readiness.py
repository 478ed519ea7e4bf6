# /*
# Copyright 2026 The Grove Authors.
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

"""Readiness polling for submitted workloads.

A poll re-fetches the object once per tick and evaluates a kind-specific
predicate on a small status value extracted from it:

- Deployment / StatefulSet: ready when ``readyReplicas == spec.replicas``.
- Job: ready when no pod has failed. Successful completion is not required.

Any other kind is rejected before the first fetch.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Union

from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, wait_fixed

from preset_deployer import logger
from preset_deployer.constants import DEFAULT_POLL_INTERVAL_SECONDS
from preset_deployer.errors import PollCancelledError, ResourceNotReadyError, UnsupportedResourceError
from preset_deployer.resources import ResourceClient, ResourceKind, resource_key


@dataclass(frozen=True)
class ReplicaStatus:
    """Replica counts of a Deployment or StatefulSet."""

    desired: int
    ready: int


@dataclass(frozen=True)
class JobStatus:
    """Pod outcome counts of a Job."""

    failed: int
    succeeded: int
    active: int = 0


ReadinessStatus = Union[ReplicaStatus, JobStatus]

READINESS_KINDS = frozenset({ResourceKind.DEPLOYMENT, ResourceKind.STATEFULSET, ResourceKind.JOB})


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def observe(kind: ResourceKind, obj: Any) -> ReadinessStatus:
    """Extract the readiness-relevant counts from a fetched object.

    The desired replica count is read from the fetched spec, so external
    scaling is honoured.

    Raises:
        UnsupportedResourceError: If *kind* has no readiness predicate.
    """
    spec, status = _field(obj, "spec"), _field(obj, "status")
    if kind in (ResourceKind.DEPLOYMENT, ResourceKind.STATEFULSET):
        desired = _field(spec, "replicas")
        return ReplicaStatus(
            desired=1 if desired is None else desired,
            ready=_field(status, "ready_replicas") or 0,
        )
    if kind is ResourceKind.JOB:
        return JobStatus(
            failed=_field(status, "failed") or 0,
            succeeded=_field(status, "succeeded") or 0,
            active=_field(status, "active") or 0,
        )
    raise UnsupportedResourceError(kind.value)


def is_ready(status: ReadinessStatus) -> bool:
    if isinstance(status, ReplicaStatus):
        return status.ready == status.desired
    # TODO: confirm with product owners whether Job readiness should also require succeeded > 0.
    return status.failed == 0


def wait_for_resource(
    kind: ResourceKind,
    name: str,
    namespace: str,
    resource_client: ResourceClient,
    timeout: float,
    *,
    interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    cancel: threading.Event | None = None,
) -> ReadinessStatus:
    """Poll an object until it is ready, the deadline passes, or polling is cancelled.

    The first fetch happens one interval after the call. Fetch errors are not
    retried by the poll itself; the client's own backoff still applies.

    Args:
        kind: Object kind; must have a readiness predicate.
        name: Object name.
        namespace: Object namespace.
        resource_client: Client used to re-fetch the object on every tick.
        timeout: Seconds until the deadline.
        interval: Seconds between ticks.
        cancel: Optional event; setting it stops the poll at once.

    Returns:
        The status observed on the tick where the object became ready.

    Raises:
        UnsupportedResourceError: If *kind* has no readiness predicate.
        ResourceNotReadyError: If the deadline expired first.
        PollCancelledError: If *cancel* was set.
        ApiException: If a fetch failed; the poll is not retried.
    """
    if kind not in READINESS_KINDS:
        raise UnsupportedResourceError(kind.value)

    cancel = cancel if cancel is not None else threading.Event()

    def _sleep(seconds: float) -> None:
        if cancel.wait(seconds):
            raise PollCancelledError(f"readiness poll of {kind.value} {namespace}/{name} cancelled")

    def _fetch() -> ReadinessStatus:
        status = observe(kind, resource_client.get(name, namespace, kind))
        logger.debug("%s %s/%s status: %s", kind.value, namespace, name, status)
        return status

    _sleep(min(interval, timeout))
    retrying = Retrying(
        stop=stop_after_delay(max(timeout - interval, 0)),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda status: not is_ready(status)),
        sleep=_sleep,
    )
    try:
        status = retrying(_fetch)
    except RetryError as err:
        raise ResourceNotReadyError(kind.value, namespace, name, timeout) from err
    logger.info("%s status is ready %s=%s/%s", kind.value.lower(), kind.value.lower(), namespace, name)
    return status


def check_resource_status(
    obj: dict[str, Any],
    resource_client: ResourceClient,
    timeout: float,
    *,
    interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    cancel: threading.Event | None = None,
) -> ReadinessStatus:
    """Poll a submitted manifest, identified by its own kind, name and namespace.

    See ``wait_for_resource`` for the arguments and errors.
    """
    kind, namespace, name = resource_key(obj)
    return wait_for_resource(
        kind, name, namespace, resource_client, timeout, interval=interval, cancel=cancel,
    )
