import pytest
import yaml
from kubernetes.client.exceptions import ApiException
from typer.testing import CliRunner
from urllib3.exceptions import MaxRetryError

from conftest import job, replicated
from preset_deployer.cli import app
from preset_deployer.commands import common

runner = CliRunner()

WORKSPACE = """
metadata:
  name: foo
  namespace: ns
resource:
  count: {count}
  instanceType: Standard_NC12s_v3
inference:
  preset:
    name: {preset}
"""


@pytest.fixture
def workspace_file(tmp_path):
    def _write(preset="test-model", count=1):
        path = tmp_path / "workspace.yaml"
        path.write_text(WORKSPACE.format(preset=preset, count=count))
        return path
    return _write


@pytest.fixture
def cluster(monkeypatch, resource_client):
    monkeypatch.setattr(common, "client_factory", lambda settings: resource_client)
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "0.01")
    return resource_client


def test_render_single_node(workspace_file, monkeypatch):
    monkeypatch.setenv("PRESET_REGISTRY_NAME", "example.io")
    result = runner.invoke(app, ["render", str(workspace_file()), "--revision", "5"])
    assert result.exit_code == 0, result.output
    service, deployment = list(yaml.safe_load_all(result.stdout))
    assert service["kind"] == "Service"
    assert deployment["kind"] == "Deployment"
    assert deployment["spec"]["template"]["spec"]["containers"][0]["image"] == "example.io/kaito-test-model:0.0.1"


def test_render_distributed(workspace_file):
    result = runner.invoke(
        app, ["render", str(workspace_file("test-distributed-model", 2)), "--master-addr", "10.1.1.1",
              "--registry-name", "r.io"],
    )
    assert result.exit_code == 0, result.output
    kinds = [doc["kind"] for doc in yaml.safe_load_all(result.stdout)]
    assert kinds == ["Service", "Service", "StatefulSet"]
    assert "--master_addr=10.1.1.1" in result.stdout


def test_render_unknown_preset_fails(workspace_file):
    result = runner.invoke(app, ["render", str(workspace_file("missing"))])
    assert result.exit_code == 1


def test_deploy_and_wait(workspace_file, cluster, apps_api, core_api):
    apps_api.read_namespaced_deployment.return_value = replicated(1, 1)
    result = runner.invoke(app, ["deploy", str(workspace_file()), "--wait"])
    assert result.exit_code == 0, result.output
    core_api.create_namespaced_service.assert_called_once()
    apps_api.create_namespaced_deployment.assert_called_once()
    apps_api.read_namespaced_deployment.assert_called_once_with(name="foo", namespace="ns")


def test_deploy_reports_api_errors(workspace_file, cluster, apps_api):
    apps_api.create_namespaced_deployment.side_effect = ApiException(status=403, reason="Forbidden")
    result = runner.invoke(app, ["deploy", str(workspace_file())])
    assert result.exit_code == 1


def test_wait_unsupported_kind(cluster):
    result = runner.invoke(app, ["wait", "service", "foo", "-n", "ns", "--timeout", "1"])
    assert result.exit_code == 1


def test_wait_ready_job(cluster, batch_api):
    batch_api.read_namespaced_job.return_value = job()
    result = runner.invoke(app, ["wait", "job", "foo", "-n", "ns", "--timeout", "5"])
    assert result.exit_code == 0, result.output


def test_wait_reports_unreachable_api_server(cluster, apps_api):
    apps_api.read_namespaced_deployment.side_effect = MaxRetryError(None, "/apis/apps/v1/namespaces/ns/deployments/foo")
    result = runner.invoke(app, ["wait", "deployment", "foo", "-n", "ns", "--timeout", "5"])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)


def test_render_rejects_zero_node_count(workspace_file):
    result = runner.invoke(app, ["render", str(workspace_file("test-distributed-model", 0)), "--master-addr", "10.1.1.1"])
    assert result.exit_code == 2


def test_default_registry_holds_reference_models():
    assert common.default_registry().names() == ["test-distributed-model", "test-model"]
