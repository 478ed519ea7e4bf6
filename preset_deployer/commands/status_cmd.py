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


"""Readiness subcommand."""

from __future__ import annotations

import typer

from preset_deployer import console
from preset_deployer.commands import common
from preset_deployer.config import DeployerSettings
from preset_deployer.readiness import wait_for_resource
from preset_deployer.resources import ResourceKind


def wait(
    kind: str = typer.Argument(..., help="deployment, statefulset or job"),
    name: str = typer.Argument(..., help="Object name"),
    namespace: str = typer.Option("default", "--namespace", "-n", help="Object namespace"),
    timeout: float = typer.Option(1800, "--timeout", min=0, help="Seconds before giving up"),
) -> None:
    """Poll a workload until it reports ready."""
    settings = DeployerSettings()
    with common.exit_on_error():
        resource_kind = ResourceKind.parse(kind)
        resource_client = common.client_factory(settings)
        wait_for_resource(
            resource_kind, name, namespace, resource_client, timeout, interval=settings.poll_interval_seconds,
        )
    console.print(f"[green]\u2705 {resource_kind.value} {namespace}/{name} is ready[/green]")
