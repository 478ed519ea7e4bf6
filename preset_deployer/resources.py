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

"""Retrying create/get client over the Kubernetes API."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from preset_deployer import logger
from preset_deployer.config import DEFAULT_RETRY_POLICY, DeployerSettings, RetryPolicy
from preset_deployer.constants import HTTP_STATUS_CONFLICT, REASON_ALREADY_EXISTS
from preset_deployer.errors import UnsupportedResourceError


class ResourceKind(str, Enum):
    """Closed set of object kinds the engine creates or reads."""

    DEPLOYMENT = "Deployment"
    STATEFULSET = "StatefulSet"
    SERVICE = "Service"
    CONFIGMAP = "ConfigMap"
    JOB = "Job"

    @classmethod
    def parse(cls, kind: str) -> ResourceKind:
        """Resolve a manifest ``kind`` string, case-insensitively.

        Raises:
            UnsupportedResourceError: If the kind is not one of the known kinds.
        """
        for member in cls:
            if member.value.lower() == str(kind).lower():
                return member
        raise UnsupportedResourceError(kind)


# (api group attribute, create method, read method) per kind.
_KIND_METHODS: dict[ResourceKind, tuple[str, str, str]] = {
    ResourceKind.DEPLOYMENT: ("apps", "create_namespaced_deployment", "read_namespaced_deployment"),
    ResourceKind.STATEFULSET: ("apps", "create_namespaced_stateful_set", "read_namespaced_stateful_set"),
    ResourceKind.SERVICE: ("core", "create_namespaced_service", "read_namespaced_service"),
    ResourceKind.CONFIGMAP: ("core", "create_namespaced_config_map", "read_namespaced_config_map"),
    ResourceKind.JOB: ("batch", "create_namespaced_job", "read_namespaced_job"),
}


# Failures raised by a cluster call: API responses and transport errors.
API_ERRORS: tuple[type[Exception], ...] = (ApiException, HTTPError)


def describe_api_error(err: Exception) -> str:
    """Return a one-line description of an API or transport failure."""
    if isinstance(err, ApiException):
        return f"({err.status}) {err.reason}"
    return str(err) or type(err).__name__


def resource_key(manifest: dict[str, Any]) -> tuple[ResourceKind, str, str]:
    """Return ``(kind, namespace, name)`` carried by a manifest.

    Raises:
        UnsupportedResourceError: If the manifest kind is unknown.
    """
    metadata = manifest.get("metadata") or {}
    return ResourceKind.parse(manifest.get("kind", "")), metadata.get("namespace", "default"), metadata["name"]


def is_already_exists(err: BaseException) -> bool:
    """Return True if *err* reports that the object already exists."""
    if not isinstance(err, ApiException) or err.status != HTTP_STATUS_CONFLICT:
        return False
    try:
        body = json.loads(err.body) if err.body else {}
    except (TypeError, ValueError):
        return True
    if not isinstance(body, dict):
        return True
    return body.get("reason", REASON_ALREADY_EXISTS) == REASON_ALREADY_EXISTS


def load_kube_config(settings: DeployerSettings) -> None:
    """Load cluster credentials: explicit kubeconfig, in-cluster, or default lookup."""
    if settings.in_cluster:
        config.load_incluster_config()
        return
    try:
        config.load_kube_config(config_file=settings.kubeconfig)
        logger.debug("Loaded kubeconfig %s", settings.kubeconfig or "(default)")
    except ConfigException:
        if settings.kubeconfig:
            raise
        logger.warning("Local kubeconfig not found. Trying in-cluster config...")
        config.load_incluster_config()


class ResourceClient:
    """Create and read cluster objects with bounded retry.

    Every call runs under the client's ``RetryPolicy``. Once the attempts are
    exhausted the last error is raised unchanged.
    """

    def __init__(
        self,
        apps_api: client.AppsV1Api | None = None,
        core_api: client.CoreV1Api | None = None,
        batch_api: client.BatchV1Api | None = None,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ) -> None:
        self.apps = apps_api if apps_api is not None else client.AppsV1Api()
        self.core = core_api if core_api is not None else client.CoreV1Api()
        self.batch = batch_api if batch_api is not None else client.BatchV1Api()
        self.retry_policy = retry_policy

    @classmethod
    def from_settings(cls, settings: DeployerSettings) -> ResourceClient:
        """Load credentials and build a client with the configured retry policy."""
        load_kube_config(settings)
        return cls(retry_policy=settings.retry_policy())

    def _method(self, kind: ResourceKind, create: bool):
        group, create_name, read_name = _KIND_METHODS[kind]
        return getattr(getattr(self, group), create_name if create else read_name)

    def create(self, manifest: dict[str, Any]) -> Any:
        """Submit a new object.

        Args:
            manifest: Object manifest with ``kind`` and ``metadata``.

        Returns:
            The object as returned by the API server.

        Raises:
            ApiException: The last API error after all retries, including
                AlreadyExists (see ``is_already_exists``).
        """
        kind, namespace, name = resource_key(manifest)
        logger.info("Create%s %s=%s/%s", kind.value, kind.value.lower(), namespace, name)
        create = self._method(kind, create=True)
        return self.retry_policy.retrying()(create, namespace=namespace, body=manifest)

    def get(self, name: str, namespace: str, kind: ResourceKind) -> Any:
        """Fetch the current state of an object by key.

        Raises:
            ApiException: The last API error after all retries.
        """
        read = self._method(kind, create=False)
        return self.retry_policy.retrying()(read, name=name, namespace=namespace)

    def get_node(self, name: str) -> Any:
        """Fetch a cluster node by name."""
        return self.retry_policy.retrying()(self.core.read_node, name=name)
