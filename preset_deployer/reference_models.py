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


"""Reference models used by tests and the CLI default registry."""

from __future__ import annotations

from datetime import timedelta

from preset_deployer.model import Model, ModelRegistry, PresetParam

TEST_MODEL_NAME = "test-model"
TEST_DISTRIBUTED_MODEL_NAME = "test-distributed-model"


class TestModel(Model):
    """Single-node model launched with plain ``python3``."""

    __test__ = False

    def get_inference_parameters(self) -> PresetParam:
        return PresetParam(
            name=TEST_MODEL_NAME,
            gpu_count_requirement="1",
            readiness_timeout=timedelta(minutes=30),
            base_command="python3",
            model_run_params={"torch_dtype": "float16", "pipeline": "text-generation"},
            tag="0.0.1",
        )

    def get_tuning_parameters(self) -> PresetParam:
        return PresetParam(
            name=TEST_MODEL_NAME,
            gpu_count_requirement="1",
            readiness_timeout=timedelta(minutes=30),
        )

    def support_distributed_inference(self) -> bool:
        return False

    def support_tuning(self) -> bool:
        return True


class TestDistributedModel(Model):
    """Model that can be sharded across nodes with ``torchrun``."""

    __test__ = False

    def get_inference_parameters(self) -> PresetParam:
        return PresetParam(
            name=TEST_DISTRIBUTED_MODEL_NAME,
            gpu_count_requirement="1",
            readiness_timeout=timedelta(minutes=30),
            base_command="torchrun",
            torch_run_params={},
            torch_run_rdzv_params={},
            model_run_params={"max_seq_len": "512", "max_batch_size": "8"},
            world_size=4,
            tag="0.0.1",
        )

    def get_tuning_parameters(self) -> PresetParam:
        return PresetParam(
            name=TEST_DISTRIBUTED_MODEL_NAME,
            gpu_count_requirement="1",
            readiness_timeout=timedelta(minutes=30),
        )

    def support_distributed_inference(self) -> bool:
        return True

    def support_tuning(self) -> bool:
        return True


def register_test_models(registry: ModelRegistry) -> ModelRegistry:
    """Register both reference models and return the registry."""
    registry.register(TEST_MODEL_NAME, TestModel())
    registry.register(TEST_DISTRIBUTED_MODEL_NAME, TestDistributedModel())
    return registry
