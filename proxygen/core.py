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

"""Core orchestration for proxygen.

This module provides the high-level functions that coordinate the complete
workflow: load the configuration, render a template tree into a scratch
directory, and either write a zip archive or import and deploy the bundle.

Pipeline Stages:

1. Load the configuration and check the required keys
2. Copy the template tree into a temporary directory, rendering every file
3. Generate-only mode: write the zip archive to the output directory
4. Deploy mode: connect, import the zipped tree, then deploy the new
   revision to each requested environment in order

The temporary directory is removed when the run ends, in both modes,
whether it succeeds or fails.

Design Principles:

- Stages run strictly one after another; nothing is retried
- Functions return structured data (dataclasses) for easy testing
- Error handling uses exceptions; the CLI layer formats them for display
- A failed deployment to one environment does not stop the others

Example:
    Programmatic usage:
        ```python
        from pathlib import Path
        from proxygen.core import PipelineOptions, run_pipeline

        result = run_pipeline(
            PipelineOptions(
                source=Path("templates/passthrough-template"),
                config=Path("config.json"),
                generate_only=True,
            )
        )
        print(result.archive_path)
        ```

"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import os
from pathlib import Path
import tempfile

from proxygen.build import (
    TemplateRenderer,
    archive_bytes,
    create_archive,
    detect_asset_type,
    get_template_applier,
    materialize_tree,
    template_name_for,
)
from proxygen.config import load_effective_config, require_keys
from proxygen.exceptions import ArchiveWriteError, RemoteDeployError
from proxygen.io import ApigeeClient
from proxygen.io.upload import DEFAULT_API_URL
from proxygen.logging import get_global_logger
from proxygen.results import DeployResult, PipelineResult


@dataclass(frozen=True)
class PipelineOptions:
    """Inputs for one pipeline run.

    Attributes:
        source: Template source tree.
        config: Configuration file (JSON or YAML, itself a template).
        environments: Environments to deploy to, in order. Empty means
            import only.
        service_account: Identity the deployed bundle runs as.
        generate_only: Write a zip archive instead of contacting Apigee.
        org: Apigee organization (deploy mode).
        token: OAuth2 access token (deploy mode).
        api_url: Management API base URL.
        output_dir: Where generate-only mode writes the archive.
    """

    source: Path
    config: Path
    environments: tuple[str, ...] = ()
    service_account: str | None = None
    generate_only: bool = False
    org: str | None = None
    token: str | None = None
    api_url: str = DEFAULT_API_URL
    output_dir: Path = Path(".")


def parse_environments(
    value: str | None, environ: Mapping[str, str] | None = None
) -> tuple[str, ...]:
    """Split a comma-separated environment list.

    Falls back to the ENV environment variable when value is empty. Blank
    entries are dropped and surrounding whitespace is removed.

    Example:
        ```python
        parse_environments("prod, ,test")  # ("prod", "test")
        ```
    """
    env = os.environ if environ is None else environ
    raw = value or env.get("ENV") or ""
    return tuple(name.strip() for name in raw.split(",") if name.strip())


def _deploy_all(
    client: ApigeeClient,
    name: str,
    revision: int,
    options: PipelineOptions,
    asset_type: str,
) -> list[DeployResult]:
    """Deploy one revision to every requested environment, in order."""
    logger = get_global_logger()
    deployments: list[DeployResult] = []

    for environment in options.environments:
        logger.verbose("DEPLOY", f"Deploying r{revision} to {environment}")
        try:
            result = client.deploy(
                name,
                revision,
                environment,
                asset_type=asset_type,
                service_account=options.service_account,
            )
        except RemoteDeployError as err:
            logger.info("DEPLOY", f"{environment}: deployment failed: {err}")
            result = DeployResult(
                environment=environment,
                name=name,
                revision=revision,
                status="failed",
                detail=str(err),
            )
        else:
            logger.info("DEPLOY", f"{environment}: deployment ok.")
        deployments.append(result)

    return deployments


def run_pipeline(
    options: PipelineOptions,
    *,
    client: ApigeeClient | None = None,
    environ: Mapping[str, str] | None = None,
) -> PipelineResult:
    """Render a template tree and package or deploy it.

    This is the main entry point for the 'proxygen' command.

    Args:
        options: Run inputs.
        client: Apigee client to use in deploy mode. Default builds one
            from options.org, options.token and options.api_url.
        environ: Environment mapping for the configuration. Default is
            os.environ.

    Returns:
        PipelineResult describing the archive (generate-only) or the
        import and deployments.

    Raises:
        ConfigError: If the configuration is missing, invalid or refers to
            unset environment variables.
        PackagingError: If rendering, tree layout or archiving fails.
        RemoteConnectError: If the organization cannot be reached.
        RemoteImportError: If the bundle import fails.

    Note:
        Deployment failures are reported in PipelineResult.deployments and
        do not raise.
    """
    logger = get_global_logger()
    mode = "generate" if options.generate_only else "deploy"
    total = 3 if options.generate_only else 4

    logger.step(1, total, "Loading configuration...")
    config = load_effective_config(options.config, environ=environ)
    require_keys(config)
    proxyname = str(config["proxyname"])
    logger.verbose("CONFIG", f"proxyname: {proxyname}")
    logger.verbose("CONFIG", f"basepath: {config['basepath']}")

    source = Path(options.source)
    asset_type = detect_asset_type(source)

    with tempfile.TemporaryDirectory(prefix="proxygen-") as tmp:
        work = Path(tmp)
        logger.step(2, total, "Rendering template tree...")
        materialize_tree(
            source,
            work,
            get_template_applier(config, root=work),
            proxyname=proxyname,
        )

        if options.generate_only:
            logger.step(3, total, "Writing archive...")
            try:
                archive = create_archive(
                    work,
                    template_name_for(source),
                    Path(options.output_dir),
                    asset_type=asset_type,
                )
            except ArchiveWriteError as err:
                Path(err.archive_path).unlink(missing_ok=True)
                raise
            logger.info("PACKAGE", f"Archive written: {archive}")
            return PipelineResult(
                mode=mode, proxyname=proxyname, archive_path=archive
            )

        if client is None:
            client = ApigeeClient(
                options.org or "", options.token or "", api_url=options.api_url
            )

        logger.step(3, total, f"Importing {proxyname} into {client.org}...")
        client.connect()
        imported = client.import_bundle(proxyname, archive_bytes(work), asset_type)

    logger.info("IMPORT", f"import ok. {imported.name} revision {imported.revision}")

    logger.step(4, total, "Deploying...")
    if not options.environments:
        logger.info("DEPLOY", "finished (not deploying)")
        return PipelineResult(mode=mode, proxyname=proxyname, imported=imported)

    deployments = _deploy_all(
        client, imported.name, imported.revision, options, asset_type
    )
    return PipelineResult(
        mode=mode,
        proxyname=proxyname,
        imported=imported,
        deployments=deployments,
    )


def expand_file(
    template_path: Path,
    config_path: Path,
    *,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Evaluate one template file against a configuration.

    This is the main entry point for the 'proxygen-expand' command. The
    file itself is never modified.

    Args:
        template_path: File to evaluate.
        config_path: Configuration file (JSON or YAML).
        environ: Environment mapping. Default is os.environ.

    Returns:
        The evaluated text.

    Raises:
        ConfigError: If the configuration cannot be loaded.
        TemplateRenderError: If evaluation fails.
        OSError: If the template file cannot be read.
    """
    config = load_effective_config(config_path, environ=environ)
    template_path = Path(template_path)
    text = template_path.read_text(encoding="utf-8")
    renderer = TemplateRenderer(config, root=template_path.resolve().parent)
    return renderer.render(text, template_path)
