# Copyright 2025 Roger Cibrian
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

"""Public API return types for proxygen.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Example:
    Using result types:
        ```python
        from proxygen.core import PipelineOptions, run_pipeline

        result = run_pipeline(options)
        for deployment in result.deployments:
            print(deployment.environment, deployment.status)
        ```

Note:
    Only public API return types belong in this module. Internal types
    (like TemplateSettings) stay co-located with their related logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class MaterializeResult:
    """Summary of copying and rendering a template source tree.

    Attributes:
        dest_dir: Root of the populated working tree.
        files_rendered: Number of files copied and passed to the callback.
        files_skipped: Number of backup (``*~``) or disabled (``#*``) files.
        descriptor_path: The renamed proxy descriptor, or None if no
            descriptor matched.
    """

    dest_dir: Path
    files_rendered: int
    files_skipped: int
    descriptor_path: Path | None


@dataclass(frozen=True)
class ImportResult:
    """Result from importing a bundle into Apigee.

    Attributes:
        name: Proxy or shared flow name.
        revision: Revision number created by the import.
        asset_type: "apiproxy" or "sharedflowbundle".
    """

    name: str
    revision: int
    asset_type: str


@dataclass(frozen=True)
class DeployResult:
    """Result from deploying one revision to one environment.

    Attributes:
        environment: Target environment name.
        name: Proxy or shared flow name.
        revision: Deployed revision.
        status: "success" or "failed".
        detail: Server message for failures, empty on success.
    """

    environment: str
    name: str
    revision: int
    status: str
    detail: str = ""


@dataclass(frozen=True)
class PipelineResult:
    """Result from a full pipeline run.

    Attributes:
        mode: "generate" or "deploy".
        proxyname: Configured proxy name.
        archive_path: The zip written in generate mode, else None.
        imported: Import result in deploy mode, else None.
        deployments: One entry per requested environment (deploy mode).
        status: Always "success" when returned; fatal errors raise.
    """

    mode: str
    proxyname: str
    archive_path: Path | None = None
    imported: ImportResult | None = None
    deployments: list[DeployResult] = field(default_factory=list)
    status: str = "success"
