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

"""Workspace request types consumed by the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ModelImageAccessMode(str, Enum):
    """Whether a preset image is pulled from the public preset registry."""

    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True)
class PresetSpec:
    """Preset reference of a workspace.

    Attributes:
        name: Registered model name.
        access_mode: Public registry image, or a private override.
        image: Explicit image reference, used only in private mode.
        image_pull_secrets: Secrets for pulling the private image.
    """

    name: str
    access_mode: ModelImageAccessMode = ModelImageAccessMode.PUBLIC
    image: str = ""
    image_pull_secrets: tuple[str, ...] = ()


@dataclass(frozen=True)
class AdapterSpec:
    """Adapter artifact mounted next to the base model."""

    name: str
    image: str = ""
    image_pull_secrets: tuple[str, ...] = ()
    strength: str | None = None


@dataclass(frozen=True)
class ResourceSpec:
    """Compute requested for a workspace.

    Attributes:
        count: Number of nodes (and replicas) requested.
        instance_type: GPU SKU backing the nodes.
        label_selector: Node labels the workload is pinned to.
    """

    count: int = 1
    instance_type: str = ""
    label_selector: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValueError(f"resource count must be at least 1, got {self.count}")


@dataclass(frozen=True)
class InferenceSpec:
    preset: PresetSpec
    adapters: tuple[AdapterSpec, ...] = ()


@dataclass(frozen=True)
class Workspace:
    """A model deployment request."""

    name: str
    namespace: str
    resource: ResourceSpec
    inference: InferenceSpec
    worker_nodes: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Workspace:
        """Build a Workspace from its YAML/JSON document shape.

        Args:
            data: Mapping with ``metadata``, ``resource``, ``inference`` and
                optional ``status.workerNodes`` keys.

        Returns:
            The parsed workspace.

        Raises:
            ValueError: If required keys are missing or the node count is
                not positive.
        """
        metadata = data.get("metadata") or {}
        if not metadata.get("name"):
            raise ValueError("workspace metadata.name is required")
        preset = (data.get("inference") or {}).get("preset") or {}
        if not preset.get("name"):
            raise ValueError("workspace inference.preset.name is required")

        resource = data.get("resource") or {}
        options = preset.get("presetOptions") or {}
        adapters = tuple(
            AdapterSpec(
                name=adapter["source"]["name"],
                image=adapter["source"].get("image", ""),
                image_pull_secrets=tuple(adapter["source"].get("imagePullSecrets") or ()),
                strength=adapter.get("strength"),
            )
            for adapter in (data["inference"].get("adapters") or [])
        )
        return cls(
            name=metadata["name"],
            namespace=metadata.get("namespace", "default"),
            resource=ResourceSpec(
                count=int(resource.get("count", 1)),
                instance_type=resource.get("instanceType", ""),
                label_selector=dict((resource.get("labelSelector") or {}).get("matchLabels") or {}),
            ),
            inference=InferenceSpec(
                preset=PresetSpec(
                    name=preset["name"],
                    access_mode=ModelImageAccessMode(preset.get("accessMode", ModelImageAccessMode.PUBLIC.value)),
                    image=options.get("image", ""),
                    image_pull_secrets=tuple(options.get("imagePullSecrets") or ()),
                ),
                adapters=adapters,
            ),
            worker_nodes=tuple((data.get("status") or {}).get("workerNodes") or ()),
        )
