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

"""Working tree materialization for proxy bundles.

This module copies a template source tree into a working directory, runs a
per-file callback (normally the template renderer) on every copied file,
and renames the proxy descriptor to match the configured proxy name.

Private Helpers:
    - _is_skipped: Backup (``*~``) and disabled (``#*``) file filter
    - _copy_tree: Recursive copy with the per-file hook
    - _rename_descriptor: Rename apiproxy/<name>.xml to <proxyname>.xml

Design Principles:
    - The source tree is never modified
    - Every copied file goes through the callback exactly once
    - Sibling order is not significant; output depends only on content
    - Failures propagate immediately; partial output is not rolled back

Example:
    from pathlib import Path
    from proxygen.build import get_template_applier, materialize_tree

    result = materialize_tree(
        Path("templates/passthrough-template"),
        Path("/tmp/work"),
        get_template_applier(config, root=Path("/tmp/work")),
        proxyname=config["proxyname"],
    )
    print(result.descriptor_path)  # /tmp/work/apiproxy/orders.xml
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import shutil

from proxygen.exceptions import BundleLayoutError
from proxygen.results import MaterializeResult

ASSET_TYPES = ("apiproxy", "sharedflowbundle")
DESCRIPTOR_DIR = "apiproxy"


def _is_skipped(name: str) -> bool:
    """Return True for editor backups and disabled files."""
    return name.endswith("~") or name.startswith("#")


def detect_asset_type(tree: Path) -> str:
    """Determine whether a tree holds an API proxy or a shared flow.

    Args:
        tree: Root of a source or working tree.

    Returns:
        "apiproxy" or "sharedflowbundle". Trees with neither child
        directory default to "apiproxy".
    """
    for asset_type in ASSET_TYPES:
        if (tree / asset_type).is_dir():
            return asset_type
    return ASSET_TYPES[0]


def _copy_tree(
    src: Path,
    dest: Path,
    on_file: Callable[[Path], None] | None,
    counts: dict[str, int],
) -> None:
    """Copy src into dest recursively, calling on_file for each copied file."""
    from proxygen.logging import get_global_logger

    logger = get_global_logger()
    dest.mkdir(parents=True, exist_ok=True)

    for item in src.iterdir():
        target = dest / item.name
        if item.is_dir():
            _copy_tree(item, target, on_file, counts)
        elif _is_skipped(item.name):
            logger.verbose("BUILD", f"  Skipped: {item.name}")
            counts["skipped"] += 1
        else:
            shutil.copyfile(item, target)
            if on_file is not None:
                on_file(target)
            logger.debug("BUILD", f"  Copied file: {target}")
            counts["rendered"] += 1


def _rename_descriptor(dest_dir: Path, proxyname: str) -> Path | None:
    """Rename the top-level proxy descriptor to <proxyname>.xml.

    Args:
        dest_dir: Working tree root.
        proxyname: Configured proxy name.

    Returns:
        The descriptor's new path, or None if no descriptor exists.

    Raises:
        BundleLayoutError: If more than one descriptor candidate exists.

    Note:
        A tree without apiproxy/*.xml (e.g. a sharedflowbundle) is left
        as-is.
    """
    from proxygen.logging import get_global_logger

    logger = get_global_logger()
    descriptor_dir = dest_dir / DESCRIPTOR_DIR
    candidates = (
        sorted(p for p in descriptor_dir.glob("*.xml") if p.is_file())
        if descriptor_dir.is_dir()
        else []
    )

    if not candidates:
        logger.verbose("BUILD", "No apiproxy/*.xml descriptor found, not renaming")
        return None
    if len(candidates) > 1:
        names = ", ".join(p.name for p in candidates)
        raise BundleLayoutError(
            f"Expected one proxy descriptor in {descriptor_dir}, found: {names}"
        )

    current = candidates[0]
    renamed = descriptor_dir / f"{proxyname}.xml"
    if current != renamed:
        current.rename(renamed)
        logger.verbose("BUILD", f"Renamed {current.name} -> {renamed.name}")
    return renamed


def materialize_tree(
    source_dir: Path,
    dest_dir: Path,
    on_file: Callable[[Path], None] | None,
    proxyname: str,
) -> MaterializeResult:
    """Copy a template source tree and render every file into dest_dir.

    Args:
        source_dir: Template source tree (read-only).
        dest_dir: Destination root; created if missing, merged into if it
            already exists.
        on_file: Called with each destination file after it is copied.
            Usually a renderer from get_template_applier().
        proxyname: Name used for the apiproxy descriptor file.

    Returns:
        MaterializeResult with file counts and the descriptor path.

    Raises:
        BundleLayoutError: If source_dir is not a directory or the
            descriptor is ambiguous.
        TemplateRenderError: If on_file fails to render a file.
        OSError: If a copy fails.
    """
    from proxygen.logging import get_global_logger

    logger = get_global_logger()
    source_dir = Path(source_dir)
    dest_dir = Path(dest_dir)

    if not source_dir.is_dir():
        raise BundleLayoutError(f"Source directory not found: {source_dir}")

    logger.verbose("BUILD", f"Copying template tree: {source_dir} -> {dest_dir}")

    counts = {"rendered": 0, "skipped": 0}
    _copy_tree(source_dir, dest_dir, on_file, counts)
    descriptor = _rename_descriptor(dest_dir, proxyname)

    logger.verbose(
        "BUILD",
        f"[OK] {counts['rendered']} file(s) rendered, {counts['skipped']} skipped",
    )

    return MaterializeResult(
        dest_dir=dest_dir,
        files_rendered=counts["rendered"],
        files_skipped=counts["skipped"],
        descriptor_path=descriptor,
    )
