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

"""Command-line interface for proxygen.

This module provides the two console scripts:

    proxygen: Render a template tree, then write a zip or import and deploy
    proxygen-expand: Evaluate a single template file and print the result

Example:
    Generate a zip without contacting Apigee:
        ```bash
        $ proxygen --source templates/passthrough-template \\
            --config config.json --generateonly
        ```

    Import and deploy to two environments:
        ```bash
        $ proxygen --source templates/passthrough-template \\
            --config config.json --env test,prod \\
            --serviceaccount deployer@my-project.iam.gserviceaccount.com \\
            --org my-org --token "$(gcloud auth print-access-token)"
        ```

    Expand one file:
        ```bash
        $ proxygen-expand --templatefile apiproxy/proxies/endpoint1.xml \\
            --config config.json
        ```

Exit Codes:

- 0: Success (including deployments that failed for some environments)
- 1: Error (missing option, configuration, packaging, or network failure)

Note:
    --org, --token and --env fall back to the ORG, TOKEN and ENV
    environment variables. Verbose mode shows full tracebacks on errors.
    Debug mode implies verbose mode and dumps the evaluated configuration.

"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from importlib.metadata import PackageNotFoundError, version
import os
from pathlib import Path
import sys

from proxygen.core import (
    PipelineOptions,
    expand_file,
    parse_environments,
    run_pipeline,
)
from proxygen.exceptions import MissingRequiredCliOption, ProxyGenError
from proxygen.io.upload import DEFAULT_API_URL
from proxygen.logging import get_logger, set_global_logger


def _version_string(prog: str) -> str:
    try:
        return f"{prog} {version('proxygen')}"
    except PackageNotFoundError:
        from proxygen import __version__

        return f"{prog} {__version__}"


def _report_error(err: BaseException, args: argparse.Namespace) -> int:
    print(f"Error: {err}")
    if args.verbose or args.debug:
        import traceback

        traceback.print_exc()
    return 1


def _missing_options(args: argparse.Namespace) -> list[MissingRequiredCliOption]:
    """Collect one error per required option that is absent."""
    missing = []
    if not args.source:
        missing.append(MissingRequiredCliOption("--source"))
    if not args.config:
        missing.append(MissingRequiredCliOption("--config"))
    if not args.generateonly:
        if not args.serviceaccount:
            missing.append(MissingRequiredCliOption("--serviceaccount"))
        if not args.org:
            missing.append(
                MissingRequiredCliOption(
                    "--org", "You must specify --org or set ORG"
                )
            )
        if not args.token:
            missing.append(
                MissingRequiredCliOption(
                    "--token", "You must specify --token or set TOKEN"
                )
            )
    return missing


def cmd_generate(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    """Handler for the 'proxygen' command.

    Validates the options, then runs the pipeline: load the configuration,
    render the template tree, and either write a zip archive
    (--generateonly) or import the bundle and deploy it to each requested
    environment.

    Args:
        args: Parsed command-line arguments.
        parser: The parser, used to print usage on missing options.

    Returns:
        Exit code (0 for success, 1 for failure).

    Note:
        Deployment failures for individual environments are printed in the
        results table but do not change the exit code.

    """
    # Configure global logger
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    args.org = args.org or os.environ.get("ORG")
    args.token = args.token or os.environ.get("TOKEN")

    missing = _missing_options(args)
    if missing:
        for err in missing:
            print(f"Error: {err}")
        print()
        parser.print_help()
        return 1

    options = PipelineOptions(
        source=Path(args.source).resolve(),
        config=Path(args.config).resolve(),
        environments=parse_environments(args.env),
        service_account=args.serviceaccount,
        generate_only=args.generateonly,
        org=args.org,
        token=args.token,
        api_url=args.apiurl,
        output_dir=Path(args.output_dir),
    )

    print(f"Template source: {options.source}")
    print(f"Configuration:   {options.config}")
    print()

    try:
        result = run_pipeline(options)
    except ProxyGenError as err:
        return _report_error(err, args)
    except Exception as err:  # noqa: BLE001 - last resort, keep exit code 1
        return _report_error(err, args)

    # Display results
    print()
    print("=" * 70)
    print("GENERATE RESULTS" if args.generateonly else "DEPLOY RESULTS")
    print("=" * 70)
    print(f"Proxy Name:      {result.proxyname}")
    if result.archive_path is not None:
        print(f"Archive:         {result.archive_path}")
    if result.imported is not None:
        print(f"Revision:        {result.imported.revision}")
        if not result.deployments:
            print("Environments:    (none, not deploying)")
        for deployment in result.deployments:
            print(f"  {deployment.environment:<14} {deployment.status}")
    print(f"Status:          {result.status}")
    print("=" * 70)

    return 0


def cmd_expand(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    """Handler for the 'proxygen-expand' command.

    Evaluates one template file against the configuration and prints the
    result to stdout. The file is not modified.

    Args:
        args: Parsed command-line arguments.
        parser: The parser, used to print usage on missing options.

    Returns:
        Exit code (0 for success, 1 for failure).

    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    missing = []
    if not args.templatefile:
        missing.append(MissingRequiredCliOption("--templatefile"))
    if not args.config:
        missing.append(MissingRequiredCliOption("--config"))
    if missing:
        for err in missing:
            print(f"Error: {err}")
        print()
        parser.print_help()
        return 1

    try:
        text = expand_file(Path(args.templatefile), Path(args.config))
    except (ProxyGenError, OSError) as err:
        return _report_error(err, args)
    except Exception as err:  # noqa: BLE001 - last resort, keep exit code 1
        return _report_error(err, args)

    sys.stdout.write(text)
    if not text.endswith("\n"):
        sys.stdout.write("\n")
    return 0


def _add_output_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the 'proxygen' command."""
    parser = argparse.ArgumentParser(
        prog="proxygen",
        description="Generate an Apigee proxy bundle from a template tree, "
        "then write it as a zip or import and deploy it.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=_version_string("proxygen"),
    )
    parser.add_argument(
        "--source",
        help="Template source directory (e.g. templates/passthrough-template)",
    )
    parser.add_argument(
        "--config",
        help="Configuration file (JSON or YAML, may reference {{= env.NAME }})",
    )
    parser.add_argument(
        "--env",
        default=None,
        help="Comma-separated environments to deploy to (default: $ENV)",
    )
    parser.add_argument(
        "--serviceaccount",
        default=None,
        help="Service account the deployed proxy runs as (deploy mode)",
    )
    parser.add_argument(
        "--generateonly",
        action="store_true",
        help="Write a zip archive and do not contact Apigee",
    )
    parser.add_argument(
        "--output-dir",
        default=".",
        help="Directory for the zip archive in --generateonly mode (default: .)",
    )
    parser.add_argument(
        "--org",
        default=None,
        help="Apigee organization (default: $ORG)",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="OAuth2 access token (default: $TOKEN)",
    )
    parser.add_argument(
        "--apiurl",
        default=DEFAULT_API_URL,
        help=f"Management API base URL (default: {DEFAULT_API_URL})",
    )
    _add_output_flags(parser)
    return parser


def build_expand_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the 'proxygen-expand' command."""
    parser = argparse.ArgumentParser(
        prog="proxygen-expand",
        description="Evaluate one template file against a configuration "
        "and print the result.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=_version_string("proxygen-expand"),
    )
    parser.add_argument(
        "--templatefile",
        help="Template file to evaluate",
    )
    parser.add_argument(
        "--config",
        help="Configuration file (JSON or YAML)",
    )
    _add_output_flags(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point for the proxygen CLI.

    This function is registered as the 'proxygen' console script in
    pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    exit_code = cmd_generate(args, parser)
    sys.exit(exit_code)


def expand_main(argv: Sequence[str] | None = None) -> None:
    """Main entry point for the proxygen-expand CLI."""
    parser = build_expand_parser()
    args = parser.parse_args(argv)
    exit_code = cmd_expand(args, parser)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
