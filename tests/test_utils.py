from types import SimpleNamespace
from unittest import mock

import pytest
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import MaxRetryError

from preset_deployer.errors import SKUResolutionError
from preset_deployer.utils import (
    build_cmd_str,
    config_adapter_volume,
    config_shm_volume,
    get_sku_num_gpus,
    shell_cmd,
)


def test_build_cmd_str_keeps_insertion_order():
    params = {"b": "2", "a": "1", "flag": ""}
    assert build_cmd_str("run", params) == "run --b=2 --a=1 --flag"


def test_build_cmd_str_without_params():
    assert build_cmd_str("python3", None) == "python3"
    assert build_cmd_str("python3", {}) == "python3"


def test_shell_cmd():
    assert shell_cmd("echo hi") == ["/bin/sh", "-c", "echo hi"]


def test_shm_volume_only_for_multi_node():
    assert config_shm_volume(1) == (None, None)
    assert config_shm_volume(0) == (None, None)
    volume, mount = config_shm_volume(2)
    assert volume == {"name": "dshm", "emptyDir": {"medium": "Memory"}}
    assert mount == {"name": "dshm", "mountPath": "/dev/shm"}


def test_adapter_volume():
    volume, mount = config_adapter_volume()
    assert volume["name"] == mount["name"] == "adapter-volume"
    assert mount["mountPath"] == "/mnt/adapter"


def test_known_sku_resolves_without_cluster():
    client = mock.MagicMock()
    assert get_sku_num_gpus(client, ["node-1"], "Standard_NC24ads_A100_v4", "8") == "1"
    client.get_node.assert_not_called()


def test_unknown_sku_reads_node_capacity():
    client = mock.MagicMock()
    client.get_node.return_value = SimpleNamespace(status=SimpleNamespace(capacity={"nvidia.com/gpu": "4"}))
    assert get_sku_num_gpus(client, ["node-1", "node-2"], "Custom_GPU", "1") == "4"
    client.get_node.assert_called_once_with("node-1")


def test_unknown_sku_falls_back_to_requirement():
    client = mock.MagicMock()
    client.get_node.return_value = SimpleNamespace(status=SimpleNamespace(capacity={"cpu": "8"}))
    assert get_sku_num_gpus(client, ["node-1"], "Custom_GPU", "2") == "2"
    assert get_sku_num_gpus(None, ["node-1"], "Custom_GPU", "3") == "3"
    assert get_sku_num_gpus(client, [], "Custom_GPU", "1") == "1"


def test_node_read_failure_raises_sku_error():
    client = mock.MagicMock()
    client.get_node.side_effect = ApiException(status=500, reason="boom")
    with pytest.raises(SKUResolutionError, match="node-1"):
        get_sku_num_gpus(client, ["node-1"], "Custom_GPU", "1")


def test_unresolvable_sku_raises():
    with pytest.raises(SKUResolutionError):
        get_sku_num_gpus(None, [], "Custom_GPU", "")


def test_node_transport_failure_raises_sku_error():
    client = mock.MagicMock()
    client.get_node.side_effect = MaxRetryError(None, "/api/v1/nodes/node-1")
    with pytest.raises(SKUResolutionError, match="failed to get SKU num GPUs") as exc_info:
        get_sku_num_gpus(client, ["node-1"], "Custom_GPU", "1")
    assert isinstance(exc_info.value.__cause__, MaxRetryError)
