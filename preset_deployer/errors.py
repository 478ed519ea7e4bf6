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


"""Exception hierarchy for deployment and readiness failures."""

from __future__ import annotations


class DeployerError(Exception):
    """Base class for errors raised by preset_deployer."""


class ResourceNotReadyError(DeployerError):
    """The readiness deadline expired before the resource converged."""

    def __init__(self, kind: str, namespace: str, name: str, timeout: float) -> None:
        super().__init__(f"{kind} {namespace}/{name} not ready within {timeout:g}s: deadline exceeded")
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.timeout = timeout


class PollCancelledError(DeployerError):
    """Readiness polling was cancelled by the caller."""


class UnsupportedResourceError(DeployerError):
    """Readiness cannot be evaluated for this resource kind."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"unsupported resource type: {kind}")
        self.kind = kind


class MissingPrerequisiteError(DeployerError):
    """An object that must exist before this step could not be fetched."""


class SKUResolutionError(DeployerError):
    """The GPU count for the requested instance type could not be resolved."""


class ModelNotFoundError(DeployerError, KeyError):
    """No model is registered under the requested preset name."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ModelRegistrationError(DeployerError, ValueError):
    """A model was rejected by the registry."""
