import os
import sys
from types import SimpleNamespace
from unittest import mock

# Make the repository root importable without installing the package.
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

import pytest

from preset_deployer.config import DeployerSettings, RetryPolicy
from preset_deployer.model import ModelRegistry
from preset_deployer.reference_models import register_test_models
from preset_deployer.resources import ResourceClient
from preset_deployer.workspace import (
    AdapterSpec,
    InferenceSpec,
    ModelImageAccessMode,
    PresetSpec,
    ResourceSpec,
    Workspace,
)

FAST_RETRY = RetryPolicy(steps=3, initial_seconds=0, jitter=0)


@pytest.fixture
def apps_api():
    return mock.MagicMock(name="AppsV1Api")


@pytest.fixture
def core_api():
    api = mock.MagicMock(name="CoreV1Api")
    api.read_namespaced_service.return_value = SimpleNamespace(spec=SimpleNamespace(cluster_ip="10.0.0.1"))
    return api


@pytest.fixture
def batch_api():
    return mock.MagicMock(name="BatchV1Api")


@pytest.fixture
def resource_client(apps_api, core_api, batch_api):
    return ResourceClient(apps_api, core_api, batch_api, retry_policy=FAST_RETRY)


@pytest.fixture
def registry():
    return register_test_models(ModelRegistry())


@pytest.fixture
def settings():
    return DeployerSettings(preset_registry_name="myregistry.azurecr.io", poll_interval_seconds=0.01)


def make_workspace(
    name="foo",
    namespace="ns",
    count=1,
    preset="test-model",
    instance_type="Standard_NC12s_v3",
    access_mode=ModelImageAccessMode.PUBLIC,
    image="",
    preset_secrets=(),
    adapters=(),
    worker_nodes=(),
    label_selector=None,
):
    return Workspace(
        name=name,
        namespace=namespace,
        resource=ResourceSpec(
            count=count,
            instance_type=instance_type,
            label_selector=label_selector if label_selector is not None else {"apps": "foo"},
        ),
        inference=InferenceSpec(
            preset=PresetSpec(
                name=preset, access_mode=access_mode, image=image, image_pull_secrets=tuple(preset_secrets),
            ),
            adapters=tuple(adapters),
        ),
        worker_nodes=tuple(worker_nodes),
    )


def adapter(name, *secrets):
    return AdapterSpec(name=name, image=f"registry/{name}:1", image_pull_secrets=tuple(secrets))


def replicated(desired, ready):
    return SimpleNamespace(
        spec=SimpleNamespace(replicas=desired),
        status=SimpleNamespace(ready_replicas=ready),
    )


def job(failed=0, succeeded=0, active=0):
    return SimpleNamespace(
        spec=SimpleNamespace(),
        status=SimpleNamespace(failed=failed, succeeded=succeeded, active=active),
    )
