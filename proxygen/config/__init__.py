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

Configuration files are JSON (or YAML) templates evaluated against the
process environment, then merged with that environment so templates can
use either source.

Example:
    Basic usage:
        ```python
        from pathlib import Path
        from proxygen.config import load_effective_config

        config = load_effective_config(Path("config/orders.json"))
        print(config["proxyname"])
        ```
"""

from .loader import find_env_references, load_effective_config, require_keys

__all__ = ["find_env_references", "load_effective_config", "require_keys"]
