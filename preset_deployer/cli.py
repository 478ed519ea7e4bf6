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


"""
cli.py - Command line entry point for preset workload deployment.

Subcommands:
    render   Print the manifests a workspace would produce, without a cluster
    deploy   Create the workspace Services and inference workload
    wait     Poll a workload until it is ready

Environment Variables:
    PRESET_REGISTRY_NAME   Registry hosting public preset images
    POLL_INTERVAL_SECONDS  Readiness poll period (default: 1)
    RETRY_STEPS            Attempts per cluster API call (default: 4)
    KUBECONFIG / IN_CLUSTER  Cluster credentials

Examples:
    preset-deployer render workspace.yaml --revision 3
    preset-deployer deploy workspace.yaml --wait
    preset-deployer wait statefulset my-workspace --namespace ml --timeout 1800
"""

from __future__ import annotations

import logging

import typer

from preset_deployer.commands import deploy_cmd, status_cmd

app = typer.Typer(
    help="Deploy GPU preset inference workloads and wait for readiness.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.command("render")(deploy_cmd.render)
app.command("deploy")(deploy_cmd.deploy)
app.command("wait")(status_cmd.wait)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
