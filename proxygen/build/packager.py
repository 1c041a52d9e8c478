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

"""Zip archive generation for proxy bundles.

This module packages a materialized working tree into a zip file, either
on disk (generate-only mode) or in memory (for upload to Apigee).

Design Principles:
    - Only files are stored; directories are implied by entry names
    - Entry names are POSIX paths relative to the tree root
    - Entries are written in sorted order so output does not depend on
      filesystem iteration order
    - Archive names are <assetType>-<templateName>-<timestamp>.zip

Example:
    Basic usage:
        ```python
        from pathlib import Path
        from proxygen.build.packager import create_archive, template_name_for

        archive = create_archive(
            Path("/tmp/work"),
            template_name_for(Path("templates/passthrough-template")),
            Path("."),
        )
        print(archive)  # apiproxy-passthrough-Oct19T143055.zip
        ```
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
import io
from pathlib import Path
import zipfile

from proxygen.exceptions import ArchiveWriteError

TEMPLATE_SUFFIX = "-template"

# e.g. Oct19T143055
TIMESTAMP_FORMAT = "%b%dT%H%M%S"


def timestamp_token(now: datetime | None = None) -> str:
    """Format a wall-clock time as a compact token without colons.

    Args:
        now: Time to format. Default is the current local time.

    Returns:
        Token such as "Oct19T143055".
    """
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def template_name_for(source_dir: Path) -> str:
    """Derive the logical template name from a source directory.

    The directory base name is used with a trailing "-template" removed,
    so "templates/passthrough-template" becomes "passthrough".
    """
    name = Path(source_dir).resolve().name
    if name.endswith(TEMPLATE_SUFFIX) and len(name) > len(TEMPLATE_SUFFIX):
        name = name[: -len(TEMPLATE_SUFFIX)]
    return name


def archive_name(
    template_name: str, asset_type: str = "apiproxy", now: datetime | None = None
) -> str:
    """Build the archive file name for a template."""
    return f"{asset_type}-{template_name}-{timestamp_token(now)}.zip"


def _iter_files(root: Path) -> Iterator[tuple[Path, str]]:
    """Yield (path, archive_name) for every file under root, sorted."""
    files = sorted(p for p in root.rglob("*") if p.is_file())
    for path in files:
        yield path, path.relative_to(root).as_posix()


def _write_zip(root: Path, target: io.BufferedIOBase | Path) -> int:
    """Write every file under root into a zip at target.

    Returns:
        Number of entries written.
    """
    count = 0
    with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path, name in _iter_files(root):
            zf.write(path, name)
            count += 1
    return count


def archive_bytes(root: Path) -> bytes:
    """Zip a working tree in memory.

    Args:
        root: Working tree root.

    Returns:
        The zip file contents.
    """
    from proxygen.logging import get_global_logger

    logger = get_global_logger()
    buffer = io.BytesIO()
    count = _write_zip(Path(root), buffer)
    logger.verbose("PACKAGE", f"Bundled {count} file(s) in memory")
    return buffer.getvalue()


def create_archive(
    root: Path,
    template_name: str,
    output_dir: Path,
    *,
    asset_type: str = "apiproxy",
    now: datetime | None = None,
) -> Path:
    """Create a zip archive of a materialized working tree.

    Args:
        root: Working tree root.
        template_name: Logical template name (see template_name_for).
        output_dir: Directory for the archive; created if missing.
        asset_type: Label used as the name prefix. Default is "apiproxy".
        now: Time used for the timestamp token. Default is now.

    Returns:
        Path to the created archive.

    Raises:
        ArchiveWriteError: If writing fails. The exception carries the
            partially written archive path; the caller removes it.
    """
    from proxygen.logging import get_global_logger

    logger = get_global_logger()
    output_dir = Path(output_dir)
    archive_path = output_dir / archive_name(template_name, asset_type, now)

    logger.verbose("PACKAGE", f"Writing archive: {archive_path}")

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        count = _write_zip(Path(root), archive_path)
    except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as err:
        raise ArchiveWriteError(archive_path, err) from err

    logger.verbose("PACKAGE", f"[OK] {count} file(s) archived")

    return archive_path
