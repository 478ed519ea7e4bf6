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


"""Preset parameters, the model plugin interface, and the model registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta

from preset_deployer import logger
from preset_deployer.errors import ModelNotFoundError, ModelRegistrationError


@dataclass(frozen=True)
class PresetParam:
    """Static launch parameters of a preset model.

    Mappings keep insertion order, which fixes the order of the flags in the
    generated launch command. Consumers copy them before adding values.

    Attributes:
        name: Model name.
        gpu_count_requirement: GPU count used when the SKU is unknown.
        readiness_timeout: How long the workload may take to become ready.
        base_command: Launcher prefix, e.g. ``torchrun`` or ``python3``.
        torch_run_params: Launcher flags, or None when the preset does not
            use the torch launcher.
        torch_run_rdzv_params: Rendezvous flags; present only for
            distributed-capable models.
        model_run_params: Flags passed to the inference entrypoint.
        world_size: Total number of worker processes across all nodes.
        tag: Image tag of the preset image.
    """

    name: str = ""
    gpu_count_requirement: str = "1"
    readiness_timeout: timedelta = timedelta(minutes=30)
    base_command: str = ""
    torch_run_params: dict[str, str] | None = None
    torch_run_rdzv_params: dict[str, str] | None = None
    model_run_params: dict[str, str] = field(default_factory=dict)
    world_size: int = 1
    tag: str = ""


class Model(ABC):
    """Interface implemented by every preset model plugin."""

    @abstractmethod
    def get_inference_parameters(self) -> PresetParam:
        ...

    @abstractmethod
    def get_tuning_parameters(self) -> PresetParam:
        ...

    @abstractmethod
    def support_distributed_inference(self) -> bool:
        ...

    @abstractmethod
    def support_tuning(self) -> bool:
        ...


class ModelRegistry:
    """Name to model plugin mapping, built at startup and passed explicitly."""

    def __init__(self) -> None:
        self._models: dict[str, Model] = {}

    def register(self, name: str, model: Model) -> None:
        """Register a model under a preset name.

        Args:
            name: Preset name the workspace refers to.
            model: Model plugin instance.

        Raises:
            ModelRegistrationError: If the name is empty or taken, or the
                model declares rendezvous parameters without distributed
                inference support.
        """
        if not name:
            raise ModelRegistrationError("model name must not be empty")
        params = model.get_inference_parameters()
        if params.torch_run_rdzv_params is not None and not model.support_distributed_inference():
            raise ModelRegistrationError(
                f"model {name!r} declares rendezvous parameters but does not support distributed inference"
            )
        if name in self._models:
            raise ModelRegistrationError(f"model {name!r} is already registered")
        self._models[name] = model
        logger.debug("Registered model %s (distributed=%s)", name, model.support_distributed_inference())

    def get(self, name: str) -> Model:
        """Return the model registered under *name*.

        Raises:
            ModelNotFoundError: If no such model is registered.
        """
        try:
            return self._models[name]
        except KeyError:
            raise ModelNotFoundError(f"model {name!r} is not registered") from None

    def has(self, name: str) -> bool:
        return name in self._models

    def names(self) -> list[str]:
        return sorted(self._models)
