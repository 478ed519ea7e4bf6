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

"""Preset inference workloads: launch parameters, manifests, and submission."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from kubernetes.client.exceptions import ApiException

from preset_deployer import logger
from preset_deployer.config import DeployerSettings
from preset_deployer.constants import (
    CAPACITY_NVIDIA_GPU,
    CLUSTER_DOMAIN,
    INFERENCE_FILE,
    LIVENESS_INITIAL_DELAY_SECONDS,
    LIVENESS_PERIOD_SECONDS,
    PORT_INFERENCE,
    PRESET_IMAGE_PREFIX,
    PROBE_PATH,
    RDZV_BACKEND,
    RDZV_ID,
    RDZV_MAX_RESTARTS,
    READINESS_INITIAL_DELAY_SECONDS,
    READINESS_PERIOD_SECONDS,
    SKU_TAINT_KEY,
    SKU_TAINT_VALUE_GPU,
    TORCH_MASTER_PORT,
    TORCH_NODE_RANK_FROM_HOSTNAME,
)
from preset_deployer.errors import MissingPrerequisiteError
from preset_deployer.manifests import (
    ContainerInputs,
    generate_deployment_manifest,
    generate_headless_service_manifest,
    generate_service_manifest,
    generate_statefulset_manifest,
    headless_service_name,
)
from preset_deployer.model import ModelRegistry, PresetParam
from preset_deployer.resources import (
    API_ERRORS,
    ResourceClient,
    ResourceKind,
    describe_api_error,
    is_already_exists,
)
from preset_deployer.utils import (
    build_cmd_str,
    config_adapter_volume,
    config_shm_volume,
    get_sku_num_gpus,
    shell_cmd,
)
from preset_deployer.workspace import ModelImageAccessMode, Workspace


# ============================================================================
# Fixed container policy
# ============================================================================

def container_ports() -> list[dict[str, Any]]:
    return [{"containerPort": PORT_INFERENCE}]


def liveness_probe() -> dict[str, Any]:
    return {
        "httpGet": {"path": PROBE_PATH, "port": PORT_INFERENCE},
        "initialDelaySeconds": LIVENESS_INITIAL_DELAY_SECONDS,
        "periodSeconds": LIVENESS_PERIOD_SECONDS,
    }


def readiness_probe() -> dict[str, Any]:
    return {
        "httpGet": {"path": PROBE_PATH, "port": PORT_INFERENCE},
        "initialDelaySeconds": READINESS_INITIAL_DELAY_SECONDS,
        "periodSeconds": READINESS_PERIOD_SECONDS,
    }


def gpu_tolerations() -> list[dict[str, Any]]:
    return [
        {"key": CAPACITY_NVIDIA_GPU, "operator": "Exists", "effect": "NoSchedule"},
        {"key": SKU_TAINT_KEY, "operator": "Equal", "value": SKU_TAINT_VALUE_GPU, "effect": "NoSchedule"},
    ]


@dataclass(frozen=True)
class LaunchPlan:
    """Launch inputs derived for one orchestration call; never cached.

    Attributes:
        image: Resolved container image reference.
        image_pull_secrets: Pull secret names.
        command: Container command.
        resources: GPU requests and limits, always equal.
    """

    image: str
    image_pull_secrets: list[str]
    command: list[str]
    resources: dict[str, Any]


# ============================================================================
# Distributed topology
# ============================================================================

def rendezvous_endpoint(workspace: Workspace) -> str:
    """DNS endpoint of pod 0 through the headless Service."""
    return (
        f"{workspace.name}-0.{headless_service_name(workspace.name)}."
        f"{workspace.namespace}.{CLUSTER_DOMAIN}:{TORCH_MASTER_PORT}"
    )


def distributed_torch_params(workspace: Workspace, params: PresetParam, master_addr: str) -> PresetParam:
    """Return a copy of *params* with the multi-node launcher flags filled in.

    Args:
        workspace: Workspace providing node count, name and namespace.
        params: Preset parameters; left untouched.
        master_addr: IP of the workspace Service fronting pod 0.

    Returns:
        Parameters with ``torch_run_params`` and ``torch_run_rdzv_params``
        updated for the requested topology.
    """
    nodes = workspace.resource.count
    torch_params = dict(params.torch_run_params or {})
    torch_params["nnodes"] = str(nodes)
    torch_params["nproc_per_node"] = str(params.world_size // nodes)
    if nodes > 1:
        torch_params["node_rank"] = TORCH_NODE_RANK_FROM_HOSTNAME
        torch_params["master_addr"] = master_addr
        torch_params["master_port"] = str(TORCH_MASTER_PORT)

    rdzv_params = params.torch_run_rdzv_params
    if rdzv_params is not None:
        rdzv_params = dict(rdzv_params)
        rdzv_params["max_restarts"] = RDZV_MAX_RESTARTS
        rdzv_params["rdzv_id"] = RDZV_ID
        rdzv_params["rdzv_backend"] = RDZV_BACKEND
        rdzv_params["rdzv_endpoint"] = rendezvous_endpoint(workspace)
    return replace(params, torch_run_params=torch_params, torch_run_rdzv_params=rdzv_params)


def update_torch_params_for_distributed_inference(
    resource_client: ResourceClient, workspace: Workspace, params: PresetParam,
) -> PresetParam:
    """Read the workspace Service IP and derive the multi-node launcher flags.

    The Service must already exist; the caller creates it first.

    Raises:
        MissingPrerequisiteError: If the Service cannot be read or has no
            cluster IP yet.
    """
    try:
        service = resource_client.get(workspace.name, workspace.namespace, ResourceKind.SERVICE)
    except API_ERRORS as err:
        raise MissingPrerequisiteError(
            f"service {workspace.namespace}/{workspace.name} must exist before distributed inference: "
            f"{describe_api_error(err)}"
        ) from err
    cluster_ip = getattr(getattr(service, "spec", None), "cluster_ip", None)
    if not cluster_ip or cluster_ip == "None":
        raise MissingPrerequisiteError(f"service {workspace.namespace}/{workspace.name} has no cluster IP")
    return distributed_torch_params(workspace, params, cluster_ip)


# ============================================================================
# Image, command and resources
# ============================================================================

def get_inference_image_info(
    workspace: Workspace, params: PresetParam, registry_name: str,
) -> tuple[str, list[str]]:
    """Resolve the container image and its pull secrets.

    Args:
        workspace: Workspace carrying the preset reference and adapters.
        params: Preset parameters providing the image tag.
        registry_name: Registry hosting public preset images.

    Returns:
        Tuple of (image reference, pull secret names).
    """
    secrets = [secret for adapter in workspace.inference.adapters for secret in adapter.image_pull_secrets]
    preset = workspace.inference.preset
    if preset.access_mode is ModelImageAccessMode.PRIVATE:
        secrets.extend(preset.image_pull_secrets)
        return preset.image, secrets
    return f"{registry_name}/{PRESET_IMAGE_PREFIX}{preset.name}:{params.tag}", secrets


def prepare_inference_parameters(params: PresetParam, sku_num_gpus: str) -> tuple[list[str], dict[str, Any]]:
    """Build the launch command and the GPU resource requirements.

    The command has the shape
    ``<base> <torch params> <rdzv params> inference_api.py <model params>``.

    Returns:
        Tuple of (container command, resource requirements).
    """
    torch_command = build_cmd_str(params.base_command, params.torch_run_params)
    torch_command = build_cmd_str(torch_command, params.torch_run_rdzv_params)
    model_command = build_cmd_str(INFERENCE_FILE, params.model_run_params)
    command = shell_cmd(f"{torch_command} {model_command}")

    resources = {
        "requests": {CAPACITY_NVIDIA_GPU: sku_num_gpus},
        "limits": {CAPACITY_NVIDIA_GPU: sku_num_gpus},
    }
    return command, resources


# ============================================================================
# Orchestration
# ============================================================================

def build_preset_inference(
    workspace: Workspace,
    revision: str,
    params: PresetParam,
    support_distributed_inference: bool,
    resource_client: ResourceClient | None,
    settings: DeployerSettings,
    *,
    master_addr: str | None = None,
) -> dict[str, Any]:
    """Build the inference workload manifest without submitting it.

    Args:
        workspace: Workspace to deploy.
        revision: Workspace revision stamped on Deployment pods.
        params: Preset parameters of the workspace model.
        support_distributed_inference: Whether the model runs as a StatefulSet.
        resource_client: Client for the Service and node lookups; may be None
            for offline rendering when *master_addr* is given and the SKU is
            known.
        settings: Deployer settings providing the preset registry.
        master_addr: Torch master address to use instead of reading the
            workspace Service.

    Returns:
        Deployment or StatefulSet manifest.

    Raises:
        MissingPrerequisiteError: If the workspace Service is missing.
        SKUResolutionError: If the GPU count cannot be resolved.
    """
    if params.torch_run_params is not None and support_distributed_inference:
        try:
            if master_addr is not None:
                params = distributed_torch_params(workspace, params, master_addr)
            else:
                params = update_torch_params_for_distributed_inference(resource_client, workspace, params)
        except MissingPrerequisiteError as err:
            logger.error("failed to update torch params workspace=%s/%s: %s", workspace.namespace, workspace.name, err)
            raise

    volumes: list[dict[str, Any]] = []
    volume_mounts: list[dict[str, Any]] = []
    shm_volume, shm_mount = config_shm_volume(workspace.resource.count)
    if shm_volume:
        volumes.append(shm_volume)
    if shm_mount:
        volume_mounts.append(shm_mount)
    if workspace.inference.adapters:
        adapter_volume, adapter_mount = config_adapter_volume()
        volumes.append(adapter_volume)
        volume_mounts.append(adapter_mount)

    sku_num_gpus = get_sku_num_gpus(
        resource_client, workspace.worker_nodes, workspace.resource.instance_type, params.gpu_count_requirement,
    )
    command, resources = prepare_inference_parameters(params, sku_num_gpus)
    image, image_pull_secrets = get_inference_image_info(workspace, params, settings.preset_registry_name)
    plan = LaunchPlan(image=image, image_pull_secrets=image_pull_secrets, command=command, resources=resources)

    inputs = ContainerInputs(
        image=plan.image,
        command=plan.command,
        resources=plan.resources,
        image_pull_secrets=plan.image_pull_secrets,
        ports=container_ports(),
        liveness_probe=liveness_probe(),
        readiness_probe=readiness_probe(),
        tolerations=gpu_tolerations(),
        volumes=volumes,
        volume_mounts=volume_mounts,
    )
    if support_distributed_inference:
        return generate_statefulset_manifest(workspace, workspace.resource.count, inputs)
    return generate_deployment_manifest(workspace, revision, workspace.resource.count, inputs)


def create_preset_inference(
    workspace: Workspace,
    revision: str,
    params: PresetParam,
    support_distributed_inference: bool,
    resource_client: ResourceClient,
    settings: DeployerSettings,
) -> dict[str, Any]:
    """Build and submit the inference workload; an existing one is adopted.

    Returns:
        The submitted manifest, suitable as input to
        ``readiness.check_resource_status``.

    Raises:
        MissingPrerequisiteError: If the workspace Service is missing.
        SKUResolutionError: If the GPU count cannot be resolved.
        ApiException: If the create failed for any reason other than
            AlreadyExists.
    """
    manifest = build_preset_inference(
        workspace, revision, params, support_distributed_inference, resource_client, settings,
    )
    try:
        resource_client.create(manifest)
    except ApiException as err:
        if not is_already_exists(err):
            raise
        logger.info("%s %s/%s already exists", manifest["kind"], workspace.namespace, workspace.name)
    return manifest


def create_workspace_services(
    workspace: Workspace, resource_client: ResourceClient, distributed: bool,
) -> list[dict[str, Any]]:
    """Create the workspace Service, plus the headless Service when distributed.

    Already existing Services are left in place.

    Returns:
        The Service manifests.
    """
    manifests = [generate_service_manifest(workspace, distributed)]
    if distributed:
        manifests.append(generate_headless_service_manifest(workspace))
    for manifest in manifests:
        try:
            resource_client.create(manifest)
        except ApiException as err:
            if not is_already_exists(err):
                raise
    return manifests


def create_workspace_inference(
    workspace: Workspace,
    revision: str,
    registry: ModelRegistry,
    resource_client: ResourceClient,
    settings: DeployerSettings,
) -> dict[str, Any]:
    """Resolve the workspace preset in *registry* and create its inference workload.

    Raises:
        ModelNotFoundError: If the preset is not registered.
    """
    model = registry.get(workspace.inference.preset.name)
    return create_preset_inference(
        workspace,
        revision,
        model.get_inference_parameters(),
        model.support_distributed_inference(),
        resource_client,
        settings,
    )
