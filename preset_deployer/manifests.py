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

"""Workload and Service manifest builders.

Manifests are plain dictionaries in the API's camelCase shape, ready for YAML
serialization or submission as a request body.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from preset_deployer.constants import (
    ANNOTATION_WORKSPACE_REVISION,
    HEADLESS_SERVICE_SUFFIX,
    LABEL_WORKSPACE_NAME,
    PORT_INFERENCE,
    TORCH_MASTER_PORT,
)
from preset_deployer.workspace import Workspace

LABEL_STATEFULSET_POD_NAME = "statefulset.kubernetes.io/pod-name"


@dataclass(frozen=True)
class ContainerInputs:
    """Everything the builders need to render the inference container.

    Attributes:
        image: Container image reference.
        image_pull_secrets: Names of the pull secrets.
        command: Container command, usually a shell invocation.
        ports: Container ports.
        liveness_probe: Liveness probe definition.
        readiness_probe: Readiness probe definition.
        resources: Resource requests and limits.
        tolerations: Pod tolerations.
        volumes: Pod volumes.
        volume_mounts: Container volume mounts.
    """

    image: str
    command: list[str]
    resources: dict[str, Any]
    image_pull_secrets: list[str] = field(default_factory=list)
    ports: list[dict[str, Any]] = field(default_factory=list)
    liveness_probe: dict[str, Any] | None = None
    readiness_probe: dict[str, Any] | None = None
    tolerations: list[dict[str, Any]] = field(default_factory=list)
    volumes: list[dict[str, Any]] = field(default_factory=list)
    volume_mounts: list[dict[str, Any]] = field(default_factory=list)


def headless_service_name(workspace_name: str) -> str:
    return f"{workspace_name}{HEADLESS_SERVICE_SUFFIX}"


def selector_labels(workspace: Workspace) -> dict[str, str]:
    return {LABEL_WORKSPACE_NAME: workspace.name}


def _node_affinity(workspace: Workspace) -> dict[str, Any] | None:
    requirements = [
        {"key": key, "operator": "In", "values": [value]}
        for key, value in workspace.resource.label_selector.items()
    ]
    if not requirements:
        return None
    return {
        "nodeAffinity": {
            "requiredDuringSchedulingIgnoredDuringExecution": {
                "nodeSelectorTerms": [{"matchExpressions": requirements}],
            },
        },
    }


def _container(workspace: Workspace, inputs: ContainerInputs) -> dict[str, Any]:
    container: dict[str, Any] = {
        "name": workspace.name,
        "image": inputs.image,
        "command": list(inputs.command),
        "resources": inputs.resources,
    }
    optional = {
        "ports": inputs.ports,
        "livenessProbe": inputs.liveness_probe,
        "readinessProbe": inputs.readiness_probe,
        "volumeMounts": inputs.volume_mounts,
    }
    container.update({key: value for key, value in optional.items() if value})
    return container


def _pod_template(
    workspace: Workspace, inputs: ContainerInputs, annotations: dict[str, str] | None = None,
) -> dict[str, Any]:
    metadata: dict[str, Any] = {"labels": selector_labels(workspace)}
    if annotations:
        metadata["annotations"] = annotations
    pod_spec: dict[str, Any] = {"containers": [_container(workspace, inputs)]}
    affinity = _node_affinity(workspace)
    if affinity:
        pod_spec["affinity"] = affinity
    if inputs.image_pull_secrets:
        pod_spec["imagePullSecrets"] = [{"name": name} for name in inputs.image_pull_secrets]
    if inputs.tolerations:
        pod_spec["tolerations"] = inputs.tolerations
    if inputs.volumes:
        pod_spec["volumes"] = inputs.volumes
    return {"metadata": metadata, "spec": pod_spec}


def _object_metadata(workspace: Workspace, name: str | None = None) -> dict[str, Any]:
    return {
        "name": name or workspace.name,
        "namespace": workspace.namespace,
        "labels": selector_labels(workspace),
    }


def generate_deployment_manifest(
    workspace: Workspace, revision: str, replicas: int, inputs: ContainerInputs,
) -> dict[str, Any]:
    """Build the single-node inference Deployment.

    Args:
        workspace: Workspace the Deployment serves.
        revision: Workspace revision, stamped on the pod template so a new
            revision rolls the pods.
        replicas: Replica count.
        inputs: Container and pod inputs.

    Returns:
        Deployment manifest.
    """
    annotations = {ANNOTATION_WORKSPACE_REVISION: revision} if revision else None
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": _object_metadata(workspace),
        "spec": {
            "replicas": replicas,
            "selector": {"matchLabels": selector_labels(workspace)},
            "strategy": {
                "type": "RollingUpdate",
                "rollingUpdate": {"maxSurge": 0, "maxUnavailable": 1},
            },
            "template": _pod_template(workspace, inputs, annotations),
        },
    }


def generate_statefulset_manifest(
    workspace: Workspace, replicas: int, inputs: ContainerInputs,
) -> dict[str, Any]:
    """Build the multi-node inference StatefulSet.

    Pods get stable ``<workspace>-<ordinal>`` hostnames through the headless
    Service, which the launch command turns into a node rank.
    """
    return {
        "apiVersion": "apps/v1",
        "kind": "StatefulSet",
        "metadata": _object_metadata(workspace),
        "spec": {
            "replicas": replicas,
            "podManagementPolicy": "Parallel",
            "serviceName": headless_service_name(workspace.name),
            "selector": {"matchLabels": selector_labels(workspace)},
            "template": _pod_template(workspace, inputs),
        },
    }


def generate_service_manifest(workspace: Workspace, distributed: bool = False) -> dict[str, Any]:
    """Build the ClusterIP Service in front of the workspace.

    For distributed workloads the selector is narrowed to pod 0, whose IP
    becomes the torch master address, and the master port is exposed.
    """
    selector = selector_labels(workspace)
    ports: list[dict[str, Any]] = [
        {"name": "http", "protocol": "TCP", "port": 80, "targetPort": PORT_INFERENCE},
    ]
    if distributed:
        selector[LABEL_STATEFULSET_POD_NAME] = f"{workspace.name}-0"
        ports.append({"name": "torch", "protocol": "TCP", "port": TORCH_MASTER_PORT, "targetPort": TORCH_MASTER_PORT})
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": _object_metadata(workspace),
        "spec": {"type": "ClusterIP", "selector": selector, "ports": ports},
    }


def generate_headless_service_manifest(workspace: Workspace) -> dict[str, Any]:
    """Build the headless Service giving StatefulSet pods stable DNS names."""
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": _object_metadata(workspace, headless_service_name(workspace.name)),
        "spec": {
            "clusterIP": "None",
            "publishNotReadyAddresses": True,
            "selector": selector_labels(workspace),
            "ports": [
                {"name": "torch", "protocol": "TCP", "port": TORCH_MASTER_PORT, "targetPort": TORCH_MASTER_PORT},
            ],
        },
    }
