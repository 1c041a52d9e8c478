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

"""
Proxy bundle building for proxygen.

This package renders template source trees into working trees and packages
them as zip archives.

Example:
    from pathlib import Path
    from proxygen.build import (
        create_archive,
        get_template_applier,
        materialize_tree,
        template_name_for,
    )

    work = Path("/tmp/work")
    materialize_tree(
        Path("templates/passthrough-template"),
        work,
        get_template_applier(config, root=work),
        proxyname=config["proxyname"],
    )
    archive = create_archive(
        work, template_name_for(Path("templates/passthrough-template")), Path(".")
    )
"""

from .manager import detect_asset_type, materialize_tree
from .packager import archive_bytes, create_archive, template_name_for
from .template import TemplateRenderer, TemplateSettings, get_template_applier

__all__ = [
    "TemplateRenderer",
    "TemplateSettings",
    "archive_bytes",
    "create_archive",
    "detect_asset_type",
    "get_template_applier",
    "materialize_tree",
    "template_name_for",
]
