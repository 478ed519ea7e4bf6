import pytest
from pydantic import ValidationError

from preset_deployer.config import DEFAULT_RETRY_POLICY, DeployerSettings, RetryPolicy, retry_on_any_error


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("PRESET_REGISTRY_NAME", "example.azurecr.io")
    monkeypatch.setenv("RETRY_STEPS", "6")
    settings = DeployerSettings()
    assert settings.preset_registry_name == "example.azurecr.io"
    assert settings.retry_policy().steps == 6


def test_settings_validation():
    with pytest.raises(ValidationError):
        DeployerSettings(poll_interval_seconds=0)
    with pytest.raises(ValidationError):
        DeployerSettings(retry_steps=0)


def test_default_retry_policy():
    assert DEFAULT_RETRY_POLICY.steps == 4
    assert DEFAULT_RETRY_POLICY.retry_predicate is retry_on_any_error
    assert retry_on_any_error(ValueError("anything"))


def test_retry_policy_stops_after_steps():
    calls = []

    def flaky():
        calls.append(1)
        raise RuntimeError(f"attempt {len(calls)}")

    with pytest.raises(RuntimeError, match="attempt 2"):
        RetryPolicy(steps=2, initial_seconds=0, jitter=0).retrying()(flaky)
    assert len(calls) == 2
