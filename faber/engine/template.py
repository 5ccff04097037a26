"""Template resolution for action parameters.

Substitutes ``{{dotted.key.path}}`` markers in any JSON-like value with data
from the run's context.  Numeric segments index into lists
(``{{team.0.name}}``) and an optional case filter may follow a pipe
(``{{projectName | slugify}}``).

Missing paths raise :class:`TemplateResolutionError` in real mode and are
left as literal marker text in simulate mode, so previews never abort on
incomplete sample data.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any, Callable, Optional

from .errors import TemplateResolutionError
from .models import ExecutionMode

_MARKER_RE = re.compile(r"\{\{\s*([\w.\-]+)\s*(?:\|\s*(\w+)\s*)?\}\}")


# ---------------------------------------------------------------------------
# Case filters
# ---------------------------------------------------------------------------


def slugify(value: str) -> str:
    """Convert a string to a URL/filename-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower().strip())
    return slug.strip("-")


def pascal_case(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", value)
    return "".join(word[:1].upper() + word[1:] for word in parts if word)


def snake_case(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def kebab_case(value: str) -> str:
    """Convert ``SomeThing`` or ``some_thing`` to ``some-thing``."""
    return snake_case(value).replace("_", "-")


def camel_case(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``someThing``."""
    pascal = pascal_case(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""


FILTERS: dict[str, Callable[[str], str]] = {
    "slugify": slugify,
    "kebab_case": kebab_case,
    "snake_case": snake_case,
    "pascal_case": pascal_case,
    "camel_case": camel_case,
    "upper": str.upper,
    "lower": str.lower,
    "title": str.title,
}


# ---------------------------------------------------------------------------
# Path lookup
# ---------------------------------------------------------------------------


def lookup(context: Mapping[str, Any], path: str) -> Any:
    """Return the value at *path* inside *context*.

    Raises:
        TemplateResolutionError: If any segment is absent.  JSON ``null`` is
            a defined value and is returned as ``None``.
    """
    value: Any = context
    for segment in path.split("."):
        if isinstance(value, Mapping):
            if segment not in value:
                raise TemplateResolutionError(path)
            value = value[segment]
        elif isinstance(value, (list, tuple)) and segment.isdigit():
            index = int(segment)
            if index >= len(value):
                raise TemplateResolutionError(path)
            value = value[index]
        else:
            raise TemplateResolutionError(path)
    return value


def has_path(context: Mapping[str, Any], path: str) -> bool:
    try:
        lookup(context, path)
    except TemplateResolutionError:
        return False
    return True


def find_references(template: Any) -> list[str]:
    """List every data path referenced by *template*, in order of appearance."""
    if isinstance(template, str):
        return [match.group(1) for match in _MARKER_RE.finditer(template)]
    if isinstance(template, Mapping):
        return [ref for value in template.values() for ref in find_references(value)]
    if isinstance(template, (list, tuple)):
        return [ref for item in template for ref in find_references(item)]
    return []


def missing_references(template: Any, context: Mapping[str, Any]) -> list[str]:
    """Referenced paths that *context* does not define."""
    return [ref for ref in find_references(template) if not has_path(context, ref)]


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def stringify(value: Any) -> str:
    """Render a data value for insertion into text.

    Strings are inserted verbatim; everything else is rendered as JSON so
    booleans and nulls read the same way they do in the data.
    """
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def resolve(
    template: Any,
    context: Mapping[str, Any],
    mode: ExecutionMode = ExecutionMode.REAL,
    escape: Optional[Callable[[str], str]] = None,
) -> Any:
    """Resolve every marker in *template* against *context*.

    Strings are substituted; mappings and lists are walked recursively
    (keys are left alone); any other value is returned unchanged.  When
    *escape* is given it is applied to every inserted value, e.g.
    ``re.escape`` for text that will be compiled as a regular expression.
    """
    if isinstance(template, str):
        return _resolve_string(template, context, mode, escape)
    if isinstance(template, Mapping):
        return {key: resolve(value, context, mode, escape) for key, value in template.items()}
    if isinstance(template, list):
        return [resolve(item, context, mode, escape) for item in template]
    if isinstance(template, tuple):
        return tuple(resolve(item, context, mode, escape) for item in template)
    return template


def _resolve_string(
    text: str,
    context: Mapping[str, Any],
    mode: ExecutionMode,
    escape: Optional[Callable[[str], str]] = None,
) -> str:
    def substitute(match: re.Match[str]) -> str:
        path, filter_name = match.group(1), match.group(2)
        if filter_name is not None and filter_name not in FILTERS:
            raise TemplateResolutionError(
                path, f"unknown template filter '{filter_name}' in {match.group(0)}"
            )
        try:
            value = lookup(context, path)
        except TemplateResolutionError:
            if mode is ExecutionMode.SIMULATE:
                return match.group(0)
            raise
        rendered = stringify(value)
        if filter_name is not None:
            rendered = FILTERS[filter_name](rendered)
        return escape(rendered) if escape is not None else rendered

    return _MARKER_RE.sub(substitute, text)
