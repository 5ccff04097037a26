"""Unit tests for template resolution (faber.engine.template).

Tests cover:
- Simple, nested and list-index lookups
- Multiple markers and surrounding literal text
- Recursive resolution of mappings and lists
- Missing-key policy in real vs simulate mode
- Case filters and unknown filters
- Idempotence and purity
- find_references / missing_references
"""

from __future__ import annotations

import copy

import pytest

from faber.engine.errors import TemplateResolutionError
from faber.engine.models import ExecutionMode
from faber.engine.template import (
    camel_case,
    find_references,
    has_path,
    kebab_case,
    lookup,
    missing_references,
    pascal_case,
    resolve,
    slugify,
    snake_case,
    stringify,
)

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# lookup
# ---------------------------------------------------------------------------


class TestLookup:
    def test_top_level_key(self, context):
        assert lookup(context, "projectName") == "Greenpark"

    def test_nested_key(self, context):
        assert lookup(context, "client.name") == "Unilever"

    def test_list_index(self, context):
        assert lookup(context, "team.1.name") == "Linus"

    def test_null_is_defined(self, context):
        assert lookup(context, "license") is None
        assert has_path(context, "license")

    def test_missing_key_raises(self, context):
        with pytest.raises(TemplateResolutionError, match="unresolved template path: client.phone"):
            lookup(context, "client.phone")

    def test_index_out_of_range(self, context):
        with pytest.raises(TemplateResolutionError):
            lookup(context, "team.5.name")

    def test_non_numeric_segment_on_list(self, context):
        assert not has_path(context, "team.first")

    def test_descending_into_scalar(self, context):
        assert not has_path(context, "projectName.length")

    def test_error_is_lookup_error(self):
        with pytest.raises(LookupError):
            lookup({}, "anything")


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------


class TestResolveStrings:
    def test_no_markers(self, context):
        assert resolve("plain text", context) == "plain text"

    def test_single_marker(self, context):
        assert resolve("src/{{projectName}}.txt", context) == "src/Greenpark.txt"

    def test_whitespace_inside_marker(self, context):
        assert resolve("{{ projectName }}", context) == "Greenpark"

    def test_multiple_markers_concatenated(self, context):
        result = resolve("{{projectName}} for {{client.name}} ({{team.0.name}})", context)
        assert result == "Greenpark for Unilever (Ada)"

    def test_non_string_values_rendered_as_json(self, context):
        assert resolve("{{isMultisite}}/{{port}}/{{license}}", context) == "true/23000/null"

    def test_list_value_rendered_as_json(self):
        assert resolve("{{tags}}", {"tags": ["a", "b"]}) == '["a", "b"]'

    def test_unmatched_braces_left_alone(self, context):
        assert resolve("{{ not a path }} and {single}", context) == "{{ not a path }} and {single}"


class TestResolveStructures:
    def test_mapping_values_resolved_keys_untouched(self, context):
        template = {"{{projectName}}": "{{client.name}}", "n": 3}
        assert resolve(template, context) == {"{{projectName}}": "Unilever", "n": 3}

    def test_nested_lists(self, context):
        template = ["{{projectName}}", ["{{team.1.name}}", 1.5], {"deep": ["{{clientName}}"]}]
        assert resolve(template, context) == ["Greenpark", ["Linus", 1.5], {"deep": ["Unilever"]}]

    def test_tuple_stays_tuple(self, context):
        assert resolve(("{{projectName}}",), context) == ("Greenpark",)

    @pytest.mark.parametrize("value", [42, 3.14, True, None])
    def test_scalars_pass_through(self, context, value):
        assert resolve(value, context) is value


class TestMissingKeyPolicy:
    def test_simulate_returns_literal_marker(self):
        assert resolve("{{client.name}}", {}, ExecutionMode.SIMULATE) == "{{client.name}}"

    def test_real_raises(self):
        with pytest.raises(TemplateResolutionError, match="unresolved template path: client.name"):
            resolve("{{client.name}}", {}, ExecutionMode.REAL)

    def test_real_is_the_default(self):
        with pytest.raises(TemplateResolutionError):
            resolve("{{client.name}}", {})

    def test_simulate_resolves_what_it_can(self, context):
        result = resolve("{{projectName}}-{{missing.key}}", context, ExecutionMode.SIMULATE)
        assert result == "Greenpark-{{missing.key}}"


class TestFilters:
    def test_filter_applied(self, context):
        assert resolve("{{ projectName | upper }}", context) == "GREENPARK"

    def test_slugify_filter(self):
        assert resolve("{{name|slugify}}", {"name": "Green Park 2!"}) == "green-park-2"

    def test_unknown_filter_raises_even_in_simulate(self, context):
        with pytest.raises(TemplateResolutionError, match="unknown template filter 'shout'"):
            resolve("{{projectName | shout}}", context, ExecutionMode.SIMULATE)

    def test_filter_on_missing_value_in_simulate_keeps_marker(self):
        assert resolve("{{name | slugify}}", {}, ExecutionMode.SIMULATE) == "{{name | slugify}}"

    @pytest.mark.parametrize(
        ("func", "value", "expected"),
        [
            (slugify, "  Hello World ", "hello-world"),
            (pascal_case, "green-park_site", "GreenParkSite"),
            (camel_case, "green-park", "greenPark"),
            (snake_case, "GreenPark", "green_park"),
            (kebab_case, "GreenPark", "green-park"),
        ],
    )
    def test_case_helpers(self, func, value, expected):
        assert func(value) == expected

    def test_camel_case_empty(self):
        assert camel_case("") == ""


class TestPurity:
    def test_idempotent(self, context):
        template = {"path": "src/{{projectName}}.txt", "items": ["{{client.name}}"]}
        assert resolve(template, context) == resolve(template, context)

    def test_does_not_mutate_inputs(self, context):
        template = {"path": ["{{projectName}}"]}
        template_before = copy.deepcopy(template)
        context_before = copy.deepcopy(context)
        resolve(template, context)
        assert template == template_before
        assert context == context_before


# ---------------------------------------------------------------------------
# Reference discovery
# ---------------------------------------------------------------------------


class TestReferences:
    def test_find_references_in_order(self):
        template = {"a": "{{x}} {{y.z}}", "b": ["{{ w | upper }}"]}
        assert find_references(template) == ["x", "y.z", "w"]

    def test_missing_references(self, context):
        assert missing_references(["{{projectName}}", "{{nope}}"], context) == ["nope"]

    def test_stringify(self):
        assert stringify("text") == "text"
        assert stringify(False) == "false"
        assert stringify({"a": 1}) == '{"a": 1}'
