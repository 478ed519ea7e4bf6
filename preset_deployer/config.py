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

"""Configuration classes: process settings and the cluster API retry policy."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from preset_deployer import logger
from preset_deployer.constants import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_PRESET_REGISTRY_NAME,
    DEFAULT_RETRY_CAP_SECONDS,
    DEFAULT_RETRY_FACTOR,
    DEFAULT_RETRY_INITIAL_SECONDS,
    DEFAULT_RETRY_JITTER,
    DEFAULT_RETRY_STEPS,
)


# ============================================================================
# Retry policy
# ============================================================================

def retry_on_any_error(_exc: BaseException) -> bool:
    """Treat every error as retryable.

    Non-retryable errors (e.g. AlreadyExists) are retried too and surface
    unchanged once the steps run out; callers filter them afterwards.
    """
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff applied to every cluster API call.

    Attributes:
        steps: Maximum number of attempts, including the first one.
        initial_seconds: Wait before the second attempt.
        factor: Multiplier applied to the wait after each failed attempt.
        jitter: Extra random wait, as a fraction of ``initial_seconds``.
        cap_seconds: Upper bound for a single wait.
        retry_predicate: Decides whether an exception is retried.
    """

    steps: int = DEFAULT_RETRY_STEPS
    initial_seconds: float = DEFAULT_RETRY_INITIAL_SECONDS
    factor: float = DEFAULT_RETRY_FACTOR
    jitter: float = DEFAULT_RETRY_JITTER
    cap_seconds: float = DEFAULT_RETRY_CAP_SECONDS
    retry_predicate: Callable[[BaseException], bool] = retry_on_any_error

    def retrying(self) -> Retrying:
        """Build a fresh tenacity controller; the last error is re-raised."""
        return Retrying(
            stop=stop_after_attempt(self.steps),
            wait=(
                wait_exponential(multiplier=self.initial_seconds, exp_base=self.factor, max=self.cap_seconds)
                + wait_random(0, self.initial_seconds * self.jitter)
            ),
            retry=retry_if_exception(self.retry_predicate),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            reraise=True,
        )


DEFAULT_RETRY_POLICY = RetryPolicy()


# ============================================================================
# Process settings
# ============================================================================

class DeployerSettings(BaseSettings):
    """Process-wide deployer settings, auto-loaded from environment variables.

    Read once at the process edge and passed explicitly to the builder and
    orchestrator; library code never reads the environment itself.

    Attributes:
        preset_registry_name: Registry hosting the public preset images
            (``PRESET_REGISTRY_NAME``).
        poll_interval_seconds: Readiness poller tick period.
        retry_steps: Attempts per cluster API call.
        kubeconfig: Explicit kubeconfig path, or None for the default lookup.
        in_cluster: Load the in-cluster service account config instead.
    """

    model_config = SettingsConfigDict(extra="ignore")

    preset_registry_name: str = DEFAULT_PRESET_REGISTRY_NAME
    poll_interval_seconds: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    retry_steps: int = Field(default=DEFAULT_RETRY_STEPS, ge=1, le=20)
    kubeconfig: str | None = None
    in_cluster: bool = False

    def retry_policy(self) -> RetryPolicy:
        """Return the default retry policy with the configured step count."""
        return RetryPolicy(steps=self.retry_steps)
