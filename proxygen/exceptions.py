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

"""Exception hierarchy for proxygen.

This module defines a custom exception hierarchy that allows library users
to distinguish between the different stages that can fail:

- ConfigError: configuration file, environment and CLI option problems
- PackagingError: template rendering, bundle layout and archive problems
- NetworkError: failures talking to the Apigee management API

All exceptions inherit from ProxyGenError, allowing users to catch every
proxygen error with a single except clause if needed.

Example:
    Catching specific error types:
        ```python
        from proxygen.config import load_effective_config
        from proxygen.exceptions import MissingEnvironmentVariable

        try:
            config = load_effective_config(Path("config.json"))
        except MissingEnvironmentVariable as e:
            print(f"Set these first: {', '.join(e.names)}")
        ```

    Catching all proxygen errors:
        ```python
        from proxygen.exceptions import ProxyGenError

        try:
            result = run_pipeline(options)
        except ProxyGenError as e:
            print(f"Error: {e}")
        ```
"""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "ProxyGenError",
    "ConfigError",
    "ConfigNotFound",
    "ConfigParseError",
    "MissingEnvironmentVariable",
    "MissingRequiredConfigKey",
    "MissingRequiredCliOption",
    "PackagingError",
    "TemplateRenderError",
    "BundleLayoutError",
    "ArchiveWriteError",
    "NetworkError",
    "RemoteConnectError",
    "RemoteImportError",
    "RemoteDeployError",
]


class ProxyGenError(Exception):
    """Base exception for all proxygen errors."""

    pass


# -------------------------------
# Configuration
# -------------------------------


class ConfigError(ProxyGenError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - Missing configuration files
    - Configuration text that does not parse after template evaluation
    - Environment variables referenced by the configuration but not set
    - Required configuration keys or command-line options that are absent
    """

    pass


class ConfigNotFound(ConfigError):
    """Raised when the configuration file does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Configuration file not found: {path}")


class ConfigParseError(ConfigError):
    """Raised when the evaluated configuration is not a valid mapping."""

    pass


class MissingEnvironmentVariable(ConfigError):
    """Raised when the configuration refers to undefined environment variables.

    Every missing name is reported at once, in order of first appearance.

    Attributes:
        names: The environment variable names that are not set.
    """

    def __init__(self, names: list[str]) -> None:
        self.names = list(names)
        super().__init__(
            "Your configuration refers to one or more undefined environment "
            f"variables: {', '.join(self.names)}"
        )


class MissingRequiredConfigKey(ConfigError):
    """Raised when the loaded configuration lacks required keys.

    Attributes:
        keys: The missing key names.
    """

    def __init__(self, keys: list[str]) -> None:
        self.keys = list(keys)
        super().__init__(
            f"The configuration must specify: {', '.join(self.keys)}"
        )


class MissingRequiredCliOption(ConfigError):
    """Raised when a required command-line option was not supplied.

    Attributes:
        option: The option name, including leading dashes.
    """

    def __init__(self, option: str, message: str | None = None) -> None:
        self.option = option
        super().__init__(message or f"You must specify {option}")


# -------------------------------
# Packaging
# -------------------------------


class PackagingError(ProxyGenError):
    """Raised for bundle generation errors.

    This exception is raised when there are problems with:

    - Evaluating a template file
    - The layout of the template source tree
    - Writing the zip archive
    """

    pass


class TemplateRenderError(PackagingError):
    """Raised when a template cannot be evaluated.

    Attributes:
        path: The file being rendered, or None for in-memory text.
        cause: The underlying exception.
    """

    def __init__(self, path: Path | None, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        where = str(path) if path is not None else "<string>"
        super().__init__(f"Failed rendering template {where}: {cause}")


class BundleLayoutError(PackagingError):
    """Raised when the template source tree has an unexpected shape."""

    pass


class ArchiveWriteError(PackagingError):
    """Raised when the zip archive cannot be written.

    Attributes:
        archive_path: The (possibly partial) archive file. The caller is
            responsible for removing it.
        cause: The underlying exception.
    """

    def __init__(self, archive_path: Path, cause: BaseException) -> None:
        self.archive_path = archive_path
        self.cause = cause
        super().__init__(f"Failed writing archive {archive_path}: {cause}")


# -------------------------------
# Network
# -------------------------------


class NetworkError(ProxyGenError):
    """Raised for errors talking to the Apigee management API.

    Attributes:
        status_code: HTTP status code, or None when no response was received.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RemoteConnectError(NetworkError):
    """Raised when the organization cannot be reached or authorized."""

    pass


class RemoteImportError(NetworkError):
    """Raised when the bundle import call fails."""

    pass


class RemoteDeployError(NetworkError):
    """Raised when a deployment call fails."""

    pass
