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

"""Template evaluation for proxy bundle files.

Bundle templates use three directives, kept compatible with existing
template trees:

- ``{{= expr }}`` interpolates ``expr`` unescaped
- ``{{- expr }}`` interpolates ``expr`` with HTML entity escaping
  (``&amp;``, ``&lt;``, ``&gt;``, ``&quot;`` and ``&#39;``)
- ``{{ stmt }}`` evaluates a statement and produces no output

Statements are limited to ``if`` / ``elif`` / ``else`` / ``endif``,
``for`` / ``endfor`` and ``set``. Expressions are evaluated by a sandboxed
Jinja2 environment, so templates can look up configuration values, loop,
branch and format strings but cannot reach arbitrary Python objects.

Each directive is translated into Jinja2 syntax. Literal text between
directives never goes through the Jinja2 lexer: it is handed to the
compiled template as data, so XML or JavaScript that happens to contain
``{%`` or ``{#`` comes out exactly as written.

Helpers available to every template:

- ``source_filename``: path of the file being rendered
- ``path``: basename, dirname, join, splitext and extname
- ``read_file(name)``: text of a file next to the template, confined to
  the renderer's root directory

Example:
    from pathlib import Path
    from proxygen.build.template import TemplateRenderer

    renderer = TemplateRenderer({"proxyname": "orders", "basepath": "/v1/orders"})
    renderer.render("<BasePath>{{= basepath }}</BasePath>")
    # '<BasePath>/v1/orders</BasePath>'
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
import posixpath
import re
from typing import Any

from jinja2 import StrictUndefined
from jinja2.sandbox import SandboxedEnvironment
from markupsafe import escape

from proxygen.exceptions import TemplateRenderError

_CHUNKS = "_chunks"


@dataclass(frozen=True)
class TemplateSettings:
    """Directive patterns for the template syntax.

    Each pattern must contain exactly one capture group holding the
    directive body. When several patterns match at the same position,
    escape wins over interpolate, and interpolate over evaluate.
    """

    escape: re.Pattern[str] = field(
        default_factory=lambda: re.compile(r"\{\{-(.+?)\}\}")
    )
    interpolate: re.Pattern[str] = field(
        default_factory=lambda: re.compile(r"\{\{=(.+?)\}\}")
    )
    evaluate: re.Pattern[str] = field(
        default_factory=lambda: re.compile(r"\{\{([\s\S]+?)\}\}")
    )

    def combined(self) -> re.Pattern[str]:
        """Return one pattern matching any directive."""
        return re.compile(
            "|".join(
                p.pattern for p in (self.escape, self.interpolate, self.evaluate)
            )
        )


DEFAULT_SETTINGS = TemplateSettings()


class _PathHelpers:
    """Pure path functions exposed to templates as ``path``."""

    @staticmethod
    def basename(p: str, suffix: str = "") -> str:
        name = posixpath.basename(str(p))
        if suffix and name.endswith(suffix):
            name = name[: -len(suffix)]
        return name

    @staticmethod
    def dirname(p: str) -> str:
        return posixpath.dirname(str(p))

    @staticmethod
    def join(*parts: str) -> str:
        return posixpath.join(*(str(x) for x in parts))

    @staticmethod
    def splitext(p: str) -> tuple[str, str]:
        return posixpath.splitext(str(p))

    @staticmethod
    def extname(p: str) -> str:
        return posixpath.splitext(str(p))[1]


PATH_HELPERS = _PathHelpers()


def _finalize(value: Any) -> Any:
    # Render null as empty and booleans as JSON literals.
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def _escape_html(value: Any) -> str:
    # &quot; rather than markupsafe's &#34;
    return str(escape(_finalize(value))).replace("&#34;", "&quot;")


def translate(text: str, settings: TemplateSettings = DEFAULT_SETTINGS) -> tuple[str, list[str]]:
    """Translate directive syntax into Jinja2 source.

    Args:
        text: Raw template text.
        settings: Directive patterns.

    Returns:
        A tuple (jinja_source, chunks) where chunks holds the literal text
        segments referenced from jinja_source by index.
    """
    chunks: list[str] = []
    out: list[str] = []
    pos = 0

    def _literal(segment: str) -> None:
        if segment:
            out.append(f"{{{{ {_CHUNKS}[{len(chunks)}] }}}}")
            chunks.append(segment)

    for match in settings.combined().finditer(text):
        _literal(text[pos : match.start()])
        escaped, interpolated, statement = match.groups()
        if escaped is not None:
            out.append(f"{{{{ ({escaped.strip()})|escape_html }}}}")
        elif interpolated is not None:
            out.append(f"{{{{ ({interpolated.strip()}) }}}}")
        else:
            out.append(f"{{% {statement.strip()} %}}")
        pos = match.end()
    _literal(text[pos:])

    return "".join(out), chunks


class TemplateRenderer:
    """Render template text against a fixed context.

    The renderer owns its settings and sandbox; nothing is configured
    process-wide, so renderers with different settings can coexist.

    Args:
        context: Values templates can reference (usually the configuration).
        settings: Directive patterns. Default is DEFAULT_SETTINGS.
        helpers: Extra names exposed to templates. Context values win on
            name collisions.
        root: Directory that read_file() may not escape. Default is the
            directory of the file being rendered.
    """

    def __init__(
        self,
        context: Mapping[str, Any],
        *,
        settings: TemplateSettings = DEFAULT_SETTINGS,
        helpers: Mapping[str, Any] | None = None,
        root: Path | None = None,
    ) -> None:
        self._context = dict(context)
        self._settings = settings
        self._helpers = dict(helpers or {})
        self._root = root.resolve() if root is not None else None
        self._env = SandboxedEnvironment(
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            finalize=_finalize,
        )
        self._env.filters["escape_html"] = _escape_html

    @property
    def settings(self) -> TemplateSettings:
        return self._settings

    def _read_file_for(self, source_path: Path | None) -> Callable[[str], str]:
        base = source_path.parent.resolve() if source_path is not None else Path.cwd()
        root = self._root or base

        def read_file(name: str) -> str:
            target = (base / name).resolve()
            if target != root and root not in target.parents:
                raise PermissionError(f"read_file outside of {root}: {name}")
            return target.read_text(encoding="utf-8")

        return read_file

    def _build_context(self, source_path: Path | None) -> dict[str, Any]:
        ctx: dict[str, Any] = {
            "path": PATH_HELPERS,
            "read_file": self._read_file_for(source_path),
            "source_filename": str(source_path) if source_path is not None else "",
        }
        ctx.update(self._helpers)
        ctx.update(self._context)
        return ctx

    def render(self, text: str, source_path: Path | None = None) -> str:
        """Render template text.

        Args:
            text: Raw template text.
            source_path: File the text came from, used for helpers and
                error messages.

        Returns:
            Rendered text.

        Raises:
            TemplateRenderError: If the template does not compile or fails
                while evaluating.
        """
        try:
            source, chunks = translate(text, self._settings)
            template = self._env.from_string(source)
            ctx = self._build_context(source_path)
            ctx[_CHUNKS] = chunks
            return template.render(ctx)
        except Exception as err:  # noqa: BLE001 - surface as TemplateRenderError
            raise TemplateRenderError(source_path, err) from err

    def render_file(self, path: Path) -> bool:
        """Render a file in place.

        Files that are not valid UTF-8 are treated as static assets and
        left untouched.

        Args:
            path: File to rewrite.

        Returns:
            True if the file was rendered, False if it was left as-is.

        Raises:
            TemplateRenderError: If rendering fails.
        """
        from proxygen.logging import get_global_logger

        logger = get_global_logger()
        raw = path.read_bytes()
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("RENDER", f"Binary file, copied as-is: {path}")
            return False

        rendered = self.render(text, path)
        if rendered != text:
            path.write_bytes(rendered.encode("utf-8"))
        logger.debug("RENDER", f"Rendered: {path}")
        return True


def get_template_applier(
    config: Mapping[str, Any], root: Path | None = None
) -> Callable[[Path], None]:
    """Return a per-file callback that renders files in place.

    Args:
        config: Configuration the templates are evaluated against.
        root: Working tree root; read_file() is confined to it.

    Returns:
        A callable taking the path of a copied file.
    """
    renderer = TemplateRenderer(config, root=root)

    def apply(path: Path) -> None:
        renderer.render_file(path)

    return apply
