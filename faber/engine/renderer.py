"""Jinja2 rendering for ``WriteFile`` actions backed by a template file.

Boilerplates can ship ``.j2`` files and let a ``WriteFile`` action render
them with the run's data.  The case filters available to ``{{path | filter}}``
markers are registered here too, so both syntaxes offer the same helpers.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Mapping

from jinja2 import (
    ChainableUndefined,
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    TemplateNotFound,
    UndefinedError,
    select_autoescape,
)

from .errors import PreconditionError, TemplateResolutionError
from .models import ExecutionMode
from .template import FILTERS


class PreviewUndefined(ChainableUndefined):
    """Undefined value that renders back as its own ``{{ name }}`` marker.

    Attribute and item lookups extend the dotted path, so a missing
    ``{{ client.name }}`` previews as ``{{ client.name }}``.
    """

    def __getattr__(self, name: str) -> "PreviewUndefined":
        if name[:2] == "__":
            raise AttributeError(name)
        return self._chain(name)

    def __getitem__(self, key: Any) -> "PreviewUndefined":
        return self._chain(key)

    def _chain(self, segment: Any) -> "PreviewUndefined":
        base = self._undefined_name
        return type(self)(
            name=f"{base}.{segment}" if base else str(segment),
            exc=self._undefined_exception,
        )

    def __str__(self) -> str:
        if self._undefined_name is None:
            return ""
        return "{{ %s }}" % self._undefined_name


class TemplateRenderer:
    """Renders jinja templates located under a boilerplate's working directory.

    In real mode undefined variables raise; in simulate mode they render as
    their marker text, mirroring the missing-key policy of
    :func:`faber.engine.template.resolve`.
    """

    def __init__(self, template_dir: str | Path, mode: ExecutionMode = ExecutionMode.REAL) -> None:
        self.template_dir = Path(template_dir)
        self.mode = mode
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined if mode is ExecutionMode.REAL else PreviewUndefined,
        )
        # Register custom filters; jinja's own upper/lower/title stay in place.
        for name, func in FILTERS.items():
            if name not in self.env.filters:
                self.env.filters[name] = _text_filter(func)

    def render(self, template_path: str, context: Mapping[str, Any]) -> str:
        """Render the template at *template_path* (relative to the template dir)."""
        try:
            template = self.env.get_template(Path(template_path).as_posix())
        except TemplateNotFound as exc:
            raise PreconditionError(f"template not found: {template_path}") from exc
        except TemplateError as exc:
            raise TemplateResolutionError(template_path, f"invalid template {template_path}: {exc}") from exc
        return self._render(template, template_path, context)

    def render_string(self, source: str, context: Mapping[str, Any], name: str = "<string>") -> str:
        """Render template text that is not (or no longer) a file on disk."""
        try:
            template = self.env.from_string(source)
        except TemplateError as exc:
            raise TemplateResolutionError(name, f"invalid template {name}: {exc}") from exc
        return self._render(template, name, context)

    def _render(self, template: Any, name: str, context: Mapping[str, Any]) -> str:
        try:
            return template.render(**context)
        except UndefinedError as exc:
            raise TemplateResolutionError(name, f"undefined value in {name}: {exc.message}") from exc
        except (TemplateError, TypeError, ValueError) as exc:
            raise TemplateResolutionError(name, f"failed to render {name}: {exc}") from exc


def _text_filter(func: Callable[[str], str]) -> Callable[[Any], str]:
    """Wrap a string helper so it accepts any template value."""

    def apply(value: Any) -> str:
        return func(str(value))

    return apply
