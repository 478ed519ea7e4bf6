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


"""Render and deploy subcommands."""

from __future__ import annotations

from pathlib import Path

import typer
import yaml
from rich.panel import Panel

from preset_deployer import console
from preset_deployer.commands import common
from preset_deployer.config import DeployerSettings
from preset_deployer.inference import build_preset_inference, create_preset_inference, create_workspace_services
from preset_deployer.manifests import generate_headless_service_manifest, generate_service_manifest
from preset_deployer.readiness import check_resource_status


def render(
    workspace_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Workspace YAML file"),
    revision: str = typer.Option("1", "--revision", help="Workspace revision"),
    master_addr: str = typer.Option(
        "127.0.0.1", "--master-addr", help="Torch master address used for distributed presets"),
    registry_name: str | None = typer.Option(
        None, "--registry-name", help="Preset registry (overrides PRESET_REGISTRY_NAME)"),
) -> None:
    """Print the Service and workload manifests for a workspace."""
    workspace = common.load_workspace(workspace_file)
    settings = DeployerSettings()
    if registry_name is not None:
        settings = settings.model_copy(update={"preset_registry_name": registry_name})

    with common.exit_on_error():
        model = common.registry_factory().get(workspace.inference.preset.name)
        distributed = model.support_distributed_inference()
        docs = [generate_service_manifest(workspace, distributed)]
        if distributed:
            docs.append(generate_headless_service_manifest(workspace))
        docs.append(build_preset_inference(
            workspace, revision, model.get_inference_parameters(), distributed, None, settings,
            master_addr=master_addr,
        ))
    typer.echo(yaml.safe_dump_all(docs, sort_keys=False), nl=False)


def deploy(
    workspace_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Workspace YAML file"),
    revision: str = typer.Option("1", "--revision", help="Workspace revision"),
    wait: bool = typer.Option(False, "--wait", help="Wait for the workload to become ready"),
) -> None:
    """Create the workspace Services and inference workload."""
    workspace = common.load_workspace(workspace_file)
    settings = DeployerSettings()

    with common.exit_on_error():
        model = common.registry_factory().get(workspace.inference.preset.name)
        params = model.get_inference_parameters()
        distributed = model.support_distributed_inference()
        resource_client = common.client_factory(settings)

        console.print(Panel.fit(f"Deploying workspace {workspace.namespace}/{workspace.name}", style="bold blue"))
        create_workspace_services(workspace, resource_client, distributed)
        manifest = create_preset_inference(workspace, revision, params, distributed, resource_client, settings)
        console.print(f"[green]\u2705 {manifest['kind']} {workspace.name} submitted[/green]")

        if wait:
            timeout = params.readiness_timeout.total_seconds()
            console.print(f"[yellow]\u2139\ufe0f  Waiting up to {timeout:g}s for {workspace.name} to be ready...[/yellow]")
            check_resource_status(manifest, resource_client, timeout, interval=settings.poll_interval_seconds)
            console.print(f"[green]\u2705 {workspace.name} is ready[/green]")
