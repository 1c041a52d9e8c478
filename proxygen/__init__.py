"""
proxygen - Apigee proxy bundle generator

A Python-based CLI tool that renders Apigee API proxy (or shared flow)
template trees against a configuration, then either writes the result as a
zip archive or imports and deploys it through the Apigee management API.

proxygen provides:
  - JSON or YAML configuration, itself a template over environment variables
  - Template evaluation with {{= }} / {{- }} / {{ }} directives (sandboxed)
  - Proxy descriptor renaming to match the configured proxy name
  - Zip archive generation for offline use
  - Import and multi-environment deployment to Apigee

Quick Start
-----------
Generate a zip archive:

    $ proxygen --source templates/passthrough-template --config config.json \\
        --generateonly

Import and deploy:

    $ proxygen --source templates/passthrough-template --config config.json \\
        --env test --serviceaccount deployer@my-project.iam.gserviceaccount.com \\
        --org my-org --token "$TOKEN"

Evaluate a single file:

    $ proxygen-expand --templatefile endpoint.xml --config config.json

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
core : module
    High-level orchestration functions.
config : package
    Configuration loading and environment merging.
build : package
    Template rendering, tree materialization and zip packaging.
io : package
    Apigee management API client.

Public API
----------
The primary interface is the CLI, but key functions are exported for
programmatic use:

    from proxygen.core import PipelineOptions, run_pipeline
    from proxygen.config import load_effective_config
    from proxygen.build import TemplateRenderer
    from proxygen.io import ApigeeClient

For more details, see the individual module docstrings.

Project Information
-------------------
Author: Roger Cibrian
License: Apache-2.0
"""

__version__ = "0.1.0"
__author__ = "Roger Cibrian"
__license__ = "Apache-2.0"
__description__ = "Apigee proxy bundle generator and deployer"

# Re-export commonly used functions for convenience
from proxygen.build import TemplateRenderer
from proxygen.config import load_effective_config
from proxygen.core import PipelineOptions, expand_file, run_pipeline
from proxygen.io import ApigeeClient

__all__ = [
    "__version__",
    "ApigeeClient",
    "PipelineOptions",
    "TemplateRenderer",
    "expand_file",
    "load_effective_config",
    "run_pipeline",
]
