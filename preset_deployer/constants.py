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


"""Constants for workload manifests, distributed launch, and retry policy."""

from __future__ import annotations

# -- Container serving --
PORT_INFERENCE = 5000
PROBE_PATH = "/health"
INFERENCE_FILE = "inference_api.py"

LIVENESS_INITIAL_DELAY_SECONDS = 600
LIVENESS_PERIOD_SECONDS = 10
READINESS_INITIAL_DELAY_SECONDS = 30
READINESS_PERIOD_SECONDS = 10

# -- GPU scheduling --
CAPACITY_NVIDIA_GPU = "nvidia.com/gpu"
SKU_TAINT_KEY = "sku"
SKU_TAINT_VALUE_GPU = "gpu"

# -- Labels & annotations --
LABEL_WORKSPACE_NAME = "kaito.sh/workspace"
ANNOTATION_WORKSPACE_REVISION = "workspace.kaito.io/revision"

# -- Image naming --
DEFAULT_PRESET_REGISTRY_NAME = "mcr.microsoft.com/aks/kaito"
PRESET_IMAGE_PREFIX = "kaito-"

# -- Volumes --
SHM_VOLUME_NAME = "dshm"
SHM_MOUNT_PATH = "/dev/shm"
ADAPTER_VOLUME_NAME = "adapter-volume"
ADAPTER_MOUNT_PATH = "/mnt/adapter"

# -- Distributed launch --
TORCH_MASTER_PORT = 29500
TORCH_NODE_RANK_FROM_HOSTNAME = "$(echo $HOSTNAME | grep -o '[^-]*$')"
RDZV_MAX_RESTARTS = "3"
RDZV_ID = "job"
RDZV_BACKEND = "c10d"
HEADLESS_SERVICE_SUFFIX = "-headless"
CLUSTER_DOMAIN = "svc.cluster.local"

# -- Readiness polling --
DEFAULT_POLL_INTERVAL_SECONDS = 1.0

# -- Cluster API retry (mirrors the client-go default backoff) --
DEFAULT_RETRY_STEPS = 4
DEFAULT_RETRY_INITIAL_SECONDS = 0.01
DEFAULT_RETRY_FACTOR = 5.0
DEFAULT_RETRY_JITTER = 0.1
DEFAULT_RETRY_CAP_SECONDS = 10.0

# -- HTTP --
HTTP_STATUS_CONFLICT = 409
REASON_ALREADY_EXISTS = "AlreadyExists"
