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

"""Configuration loading for proxygen.

A configuration file is itself a template. It is evaluated against the
process environment before it is parsed, so secrets and per-environment
values can stay out of the file:

    {
      "proxyname": "orders-{{= env.STAGE }}",
      "basepath": "/v1/orders",
      "target": "{{= env.ORDERS_BACKEND }}"
    }

Load Steps:
    1. Read the raw text (ConfigNotFound if the file is missing).
    2. Collect every ``env.NAME`` referenced by an interpolation directive.
    3. Fail with MissingEnvironmentVariable listing all names that are
       unset or empty. Nothing is evaluated until every name resolves.
    4. Evaluate the text with ``env`` as the only context.
    5. Parse the result: JSON, or YAML for ``.yaml``/``.yml`` files.
    6. Overlay the whole environment on top (environment wins).

Error Handling:
    - ConfigNotFound: the file does not exist
    - MissingEnvironmentVariable: referenced variables are not set
    - ConfigParseError: evaluated text is not a mapping in JSON/YAML
    - TemplateRenderError: the file's directives do not evaluate
    - All errors are chained with "from err" for better debugging

Example:
    Basic usage:
        ```python
        from pathlib import Path
        from proxygen.config import load_effective_config, require_keys

        config = load_effective_config(Path("config/orders.json"))
        require_keys(config, ["proxyname", "basepath"])
        print(config["proxyname"])
        ```
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import json
import os
from pathlib import Path
import re
from typing import Any

import yaml

from proxygen.build.template import TemplateRenderer
from proxygen.exceptions import (
    ConfigNotFound,
    ConfigParseError,
    MissingEnvironmentVariable,
    MissingRequiredConfigKey,
)

# {{= env.NAME }} or {{- env.NAME }}
ENV_REFERENCE = re.compile(r"\{\{[=-]\s*env\.([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")

YAML_SUFFIXES = {".yaml", ".yml"}

REQUIRED_KEYS = ("proxyname", "basepath")


# -------------------------------
# Environment references
# -------------------------------


def find_env_references(text: str) -> list[str]:
    """Return the environment variable names referenced by text.

    Names are de-duplicated and kept in order of first appearance.

    Args:
        text: Raw configuration text.

    Returns:
        Referenced variable names.
    """
    seen: dict[str, None] = {}
    for match in ENV_REFERENCE.finditer(text):
        seen.setdefault(match.group(1), None)
    return list(seen)


def _check_env_references(text: str, environ: Mapping[str, str]) -> None:
    """Raise MissingEnvironmentVariable for every unset reference."""
    missing = [name for name in find_env_references(text) if not environ.get(name)]
    if missing:
        raise MissingEnvironmentVariable(missing)


# -------------------------------
# Parsing
# -------------------------------


def _parse_structured(text: str, path: Path) -> dict[str, Any]:
    """Parse evaluated configuration text into a mapping.

    Args:
        text: Evaluated configuration text.
        path: Source file, used to pick the format and in messages.

    Returns:
        The parsed mapping.

    Raises:
        ConfigParseError: If the text does not parse or is not a mapping.
    """
    try:
        if path.suffix.lower() in YAML_SUFFIXES:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as err:
        raise ConfigParseError(f"Error parsing configuration: {path}: {err}") from err

    if not isinstance(data, dict):
        raise ConfigParseError(
            f"Configuration must be an object at the top level: {path}"
        )
    return data


# -------------------------------
# Public API
# -------------------------------


def load_effective_config(
    config_path: Path,
    *,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load a configuration file and merge it with the environment.

    Args:
        config_path: Path to the JSON or YAML configuration template.
        environ: Environment mapping. Default is os.environ.

    Returns:
        The merged configuration. Environment values replace file values
        on key collision.

    Raises:
        ConfigNotFound: If the file does not exist.
        MissingEnvironmentVariable: If referenced variables are unset.
        ConfigParseError: If the evaluated text is not a valid mapping.
        TemplateRenderError: If the file's directives fail to evaluate.
    """
    from proxygen.logging import get_global_logger

    logger = get_global_logger()
    env = dict(os.environ if environ is None else environ)

    config_path = Path(config_path)
    if not config_path.is_file():
        raise ConfigNotFound(config_path)

    logger.verbose("CONFIG", f"Loading configuration: {config_path}")
    raw = config_path.read_text(encoding="utf-8")

    _check_env_references(raw, env)

    renderer = TemplateRenderer({"env": env})
    evaluated = renderer.render(raw, config_path)

    data = _parse_structured(evaluated, config_path)
    logger.verbose(
        "CONFIG", f"Configuration defines {len(data)} key(s): {', '.join(data)}"
    )
    logger.debug("CONFIG", "--- Evaluated configuration ---")
    for line in evaluated.splitlines():
        logger.debug("CONFIG", line)

    overridden = sorted(k for k in data if k in env)
    if overridden:
        logger.verbose(
            "CONFIG", f"Environment overrides: {', '.join(overridden)}"
        )

    return {**data, **env}


def require_keys(
    config: Mapping[str, Any], keys: Iterable[str] = REQUIRED_KEYS
) -> None:
    """Ensure the configuration defines every key in keys.

    Empty values count as missing.

    Raises:
        MissingRequiredConfigKey: Listing every missing key.
    """
    missing = [k for k in keys if not config.get(k)]
    if missing:
        raise MissingRequiredConfigKey(missing)
