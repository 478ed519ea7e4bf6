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


"""Helpers shared by the CLI subcommands."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
import yaml

from preset_deployer import console
from preset_deployer.config import DeployerSettings
from preset_deployer.errors import DeployerError
from preset_deployer.model import ModelRegistry
from preset_deployer.reference_models import register_test_models
from preset_deployer.resources import API_ERRORS, ResourceClient, describe_api_error
from preset_deployer.workspace import Workspace


def default_registry() -> ModelRegistry:
    """Return a registry holding the built-in reference models."""
    return register_test_models(ModelRegistry())


# Overridable for tests and for embedding with a different model set.
registry_factory: Callable[[], ModelRegistry] = default_registry
client_factory: Callable[[DeployerSettings], ResourceClient] = ResourceClient.from_settings


def load_workspace(path: Path) -> Workspace:
    """Parse a workspace YAML file.

    Raises:
        typer.BadParameter: If the file is not a valid workspace document.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise typer.BadParameter(f"{path} does not contain a workspace document")
    try:
        return Workspace.from_dict(data)
    except (KeyError, ValueError) as err:
        raise typer.BadParameter(f"{path}: {err}") from err


@contextmanager
def exit_on_error() -> Iterator[None]:
    """Print deployer and API errors and exit with status 1."""
    try:
        yield
    except DeployerError as e:
        console.print(f"[red]\u274c {e}[/red]")
        raise typer.Exit(1) from e
    except API_ERRORS as e:
        console.print(f"[red]\u274c Kubernetes API error {describe_api_error(e)}[/red]")
        raise typer.Exit(1) from e
