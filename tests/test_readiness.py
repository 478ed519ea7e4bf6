import threading
import time

import pytest
from kubernetes.client.exceptions import ApiException
from tenacity import RetryError

from conftest import FAST_RETRY, job, replicated
from preset_deployer.errors import PollCancelledError, ResourceNotReadyError, UnsupportedResourceError
from preset_deployer.readiness import (
    JobStatus,
    ReplicaStatus,
    check_resource_status,
    is_ready,
    observe,
    wait_for_resource,
)
from preset_deployer.resources import ResourceKind

TICK = 0.01


def _manifest(kind, name="foo", namespace="ns", replicas=1):
    return {"kind": kind, "metadata": {"name": name, "namespace": namespace}, "spec": {"replicas": replicas}}


def test_deployment_ready_on_first_tick(resource_client, apps_api):
    apps_api.read_namespaced_deployment.return_value = replicated(2, 2)
    start = time.monotonic()
    status = check_resource_status(_manifest("Deployment"), resource_client, timeout=5, interval=TICK)
    assert status == ReplicaStatus(desired=2, ready=2)
    assert time.monotonic() - start < 1
    apps_api.read_namespaced_deployment.assert_called_once_with(name="foo", namespace="ns")


def test_statefulset_becomes_ready_after_scaling_converges(resource_client, apps_api):
    apps_api.read_namespaced_stateful_set.side_effect = [replicated(3, 1), replicated(3, 2), replicated(3, 3)]
    status = check_resource_status(_manifest("StatefulSet", replicas=1), resource_client, timeout=5, interval=TICK)
    # desired count comes from the fetched spec, not the submitted manifest
    assert status == ReplicaStatus(desired=3, ready=3)
    assert apps_api.read_namespaced_stateful_set.call_count == 3


def test_never_converging_workload_times_out(resource_client, apps_api):
    apps_api.read_namespaced_deployment.return_value = replicated(2, 1)
    with pytest.raises(ResourceNotReadyError, match="deadline exceeded") as exc_info:
        check_resource_status(_manifest("Deployment"), resource_client, timeout=0.05, interval=TICK)
    assert exc_info.value.name == "foo"
    assert apps_api.read_namespaced_deployment.called


def test_job_without_failures_is_ready_even_without_successes(resource_client, batch_api):
    batch_api.read_namespaced_job.return_value = job(failed=0, succeeded=0, active=1)
    status = check_resource_status(_manifest("Job"), resource_client, timeout=5, interval=TICK)
    assert status == JobStatus(failed=0, succeeded=0, active=1)


def test_job_with_failures_never_becomes_ready(resource_client, batch_api):
    batch_api.read_namespaced_job.return_value = job(failed=1, succeeded=3)
    with pytest.raises(ResourceNotReadyError):
        check_resource_status(_manifest("Job"), resource_client, timeout=0.05, interval=TICK)


def test_fetch_error_ends_poll_immediately(resource_client, apps_api):
    apps_api.read_namespaced_deployment.side_effect = ApiException(status=500, reason="boom")
    with pytest.raises(ApiException):
        check_resource_status(_manifest("Deployment"), resource_client, timeout=5, interval=TICK)
    # only the client's own retries, the poller does not loop on errors
    assert apps_api.read_namespaced_deployment.call_count == FAST_RETRY.steps


@pytest.mark.parametrize("kind", [ResourceKind.SERVICE, ResourceKind.CONFIGMAP])
def test_unsupported_kind_fails_without_polling(resource_client, core_api, kind):
    with pytest.raises(UnsupportedResourceError, match="unsupported resource type"):
        wait_for_resource(kind, "foo", "ns", resource_client, timeout=5, interval=TICK)
    core_api.read_namespaced_service.assert_not_called()
    core_api.read_namespaced_config_map.assert_not_called()


def test_unknown_manifest_kind_is_unsupported(resource_client):
    with pytest.raises(UnsupportedResourceError):
        check_resource_status({"kind": "Pod", "metadata": {"name": "foo"}}, resource_client, timeout=5)


def test_cancellation_stops_polling(resource_client, apps_api):
    apps_api.read_namespaced_deployment.return_value = replicated(1, 0)
    cancel = threading.Event()
    timer = threading.Timer(0.05, cancel.set)
    timer.start()
    try:
        with pytest.raises(PollCancelledError):
            check_resource_status(_manifest("Deployment"), resource_client, timeout=10, interval=TICK, cancel=cancel)
    finally:
        timer.cancel()


def test_pre_cancelled_poll_never_fetches(resource_client, apps_api):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(PollCancelledError):
        check_resource_status(_manifest("Deployment"), resource_client, timeout=10, interval=TICK, cancel=cancel)
    apps_api.read_namespaced_deployment.assert_not_called()


def test_deadline_shorter_than_tick_fetches_once(resource_client, apps_api):
    apps_api.read_namespaced_deployment.return_value = replicated(2, 1)
    with pytest.raises(ResourceNotReadyError) as exc_info:
        check_resource_status(_manifest("Deployment"), resource_client, timeout=0.02, interval=0.05)
    assert isinstance(exc_info.value.__cause__, RetryError)
    apps_api.read_namespaced_deployment.assert_called_once_with(name="foo", namespace="ns")


def test_cancellation_between_ticks_stops_fetching(resource_client, apps_api):
    cancel = threading.Event()

    def _read(name, namespace):
        cancel.set()
        return replicated(1, 0)

    apps_api.read_namespaced_deployment.side_effect = _read
    with pytest.raises(PollCancelledError):
        check_resource_status(_manifest("Deployment"), resource_client, timeout=10, interval=TICK, cancel=cancel)
    assert apps_api.read_namespaced_deployment.call_count == 1


def test_observe_defaults_missing_counts():
    assert observe(ResourceKind.DEPLOYMENT, replicated(None, None)) == ReplicaStatus(desired=1, ready=0)
    assert observe(ResourceKind.JOB, job(failed=None, succeeded=None, active=None)) == JobStatus(0, 0, 0)
    with pytest.raises(UnsupportedResourceError):
        observe(ResourceKind.SERVICE, object())


def test_is_ready():
    assert is_ready(ReplicaStatus(desired=0, ready=0))
    assert not is_ready(ReplicaStatus(desired=2, ready=1))
    assert is_ready(JobStatus(failed=0, succeeded=0))
    assert not is_ready(JobStatus(failed=2, succeeded=0))
