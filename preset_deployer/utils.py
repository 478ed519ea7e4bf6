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

"""Utility functions for launch commands, volumes, and GPU SKU lookup."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from preset_deployer import logger
from preset_deployer.constants import (
    ADAPTER_MOUNT_PATH,
    ADAPTER_VOLUME_NAME,
    CAPACITY_NVIDIA_GPU,
    SHM_MOUNT_PATH,
    SHM_VOLUME_NAME,
)
from preset_deployer.errors import SKUResolutionError
from preset_deployer.resources import API_ERRORS, describe_api_error

# GPUs per node for the supported GPU instance types.
SKU_GPU_COUNTS: dict[str, int] = {
    "standard_nc6s_v3": 1,
    "standard_nc12s_v3": 2,
    "standard_nc24s_v3": 4,
    "standard_nc24rs_v3": 4,
    "standard_nc4as_t4_v3": 1,
    "standard_nc8as_t4_v3": 1,
    "standard_nc16as_t4_v3": 1,
    "standard_nc64as_t4_v3": 4,
    "standard_nc24ads_a100_v4": 1,
    "standard_nc48ads_a100_v4": 2,
    "standard_nc96ads_a100_v4": 4,
    "standard_nd96asr_v4": 8,
    "standard_nd96amsr_a100_v4": 8,
    "standard_nv36ads_a10_v5": 1,
    "standard_nv72ads_a10_v5": 2,
    "standard_nd96isr_h100_v5": 8,
}


def build_cmd_str(base_command: str, params: Mapping[str, str] | None) -> str:
    """Append ``--key=value`` flags to a command, in mapping order.

    Args:
        base_command: Command prefix.
        params: Flags to append; an empty value renders as a bare ``--key``.

    Returns:
        The extended command string.
    """
    parts = [base_command]
    for key, value in (params or {}).items():
        parts.append(f"--{key}" if value == "" else f"--{key}={value}")
    return " ".join(parts)


def shell_cmd(command: str) -> list[str]:
    """Wrap a command string for execution by the container shell."""
    return ["/bin/sh", "-c", command]


def config_shm_volume(instance_count: int) -> tuple[dict[str, Any] | None, dict[str, Any] | None]:
    """Build the shared-memory volume used by multi-node inference.

    Args:
        instance_count: Number of nodes requested by the workspace.

    Returns:
        Tuple of (volume, volume_mount), or (None, None) for a single node.
    """
    if instance_count <= 1:
        return None, None
    volume = {"name": SHM_VOLUME_NAME, "emptyDir": {"medium": "Memory"}}
    return volume, {"name": SHM_VOLUME_NAME, "mountPath": SHM_MOUNT_PATH}


def config_adapter_volume() -> tuple[dict[str, Any], dict[str, Any]]:
    """Build the scratch volume adapters are copied into."""
    volume = {"name": ADAPTER_VOLUME_NAME, "emptyDir": {}}
    return volume, {"name": ADAPTER_VOLUME_NAME, "mountPath": ADAPTER_MOUNT_PATH}


def _node_gpu_capacity(node: Any) -> str | None:
    status = node.get("status") if isinstance(node, dict) else getattr(node, "status", None)
    if status is None:
        return None
    capacity = status.get("capacity") if isinstance(status, dict) else getattr(status, "capacity", None)
    value = (capacity or {}).get(CAPACITY_NVIDIA_GPU)
    return str(value) if value not in (None, "", "0") else None


def get_sku_num_gpus(
    resource_client,
    worker_nodes: Sequence[str],
    instance_type: str,
    default_gpu_count: str,
) -> str:
    """Resolve how many GPUs one workload replica should request.

    Known instance types resolve from ``SKU_GPU_COUNTS``. Otherwise the
    ``nvidia.com/gpu`` capacity of the first worker node is used, and
    finally the preset's own requirement.

    Args:
        resource_client: Client used to read worker nodes.
        worker_nodes: Names of the nodes provisioned for the workspace.
        instance_type: Requested instance type.
        default_gpu_count: GPU count requirement from the preset.

    Returns:
        GPU quantity as a string.

    Raises:
        SKUResolutionError: If a worker node cannot be read, or nothing
            yields a GPU count.
    """
    count = SKU_GPU_COUNTS.get(instance_type.lower())
    if count is not None:
        return str(count)

    if worker_nodes and resource_client is not None:
        try:
            node = resource_client.get_node(worker_nodes[0])
        except API_ERRORS as err:
            raise SKUResolutionError(
                f"failed to get SKU num GPUs: reading node {worker_nodes[0]}: {describe_api_error(err)}"
            ) from err
        capacity = _node_gpu_capacity(node)
        if capacity is not None:
            return capacity
        logger.warning("Node %s reports no %s capacity", worker_nodes[0], CAPACITY_NVIDIA_GPU)

    if not default_gpu_count:
        raise SKUResolutionError(f"failed to get SKU num GPUs: unknown instance type {instance_type!r}")
    return default_gpu_count
