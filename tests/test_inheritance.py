"""Tests for template inheritance resolution."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

import pytest

from docskel.errors import CircularInheritanceError, MissingTemplateError
from docskel.templates.base import Template, VariableSpec
from docskel.templates.inheritance import (
    InheritanceResolver,
    merge_content,
    merge_templates,
    merge_variables,
)


class DictStore:
    """Template store backed by a plain dict."""

    def __init__(self, *templates: Template) -> None:
        self.templates = {t.id: t for t in templates}
        self.lookups = 0

    def get_template(self, template_id: str) -> Template | None:
        self.lookups += 1
        return self.templates.get(template_id)


def make_template(template_id: str, parent: str | None = None, **kwargs) -> Template:
    """Create a minimal template for tests."""
    data = {
        "name": template_id.title(),
        "category": "document",
        "version": "1.0.0",
        "content": template_id.upper(),
    }
    data.update(kwargs)
    return Template(id=template_id, parent=parent, **data)


class TestMergeHelpers:
    """Tests for the merge functions."""

    def test_merge_variables_order(self) -> None:
        """Test parent order is kept, overrides replace in place, new names append."""
        parent = (VariableSpec(name="a"), VariableSpec(name="b"))
        child = (VariableSpec(name="b", type="number"), VariableSpec(name="c"))
        merged = merge_variables(parent, child)
        assert [v.name for v in merged] == ["a", "b", "c"]
        assert merged[1].type == "number"

    def test_merge_content_splices_parent(self) -> None:
        """Test that the splice marker is replaced by parent content."""
        assert merge_content("BASE", "{{> parent}}\nEXTRA") == "BASE\nEXTRA"

    def test_merge_content_without_marker_replaces(self) -> None:
        """Test that child content without a splice marker stands alone."""
        assert merge_content("BASE", "OWN") == "OWN"

    def test_merge_content_every_marker(self) -> None:
        """Test that every splice marker is replaced."""
        assert merge_content("P", "{{>parent}}-{{> parent }}") == "P-P"

    def test_merge_content_parent_is_literal(self) -> None:
        """Test that parent content is inserted verbatim."""
        assert merge_content(r"\1 \g<0>", "{{> parent}}") == r"\1 \g<0>"

    def test_merge_templates_fields(self) -> None:
        """Test scalar fallback, tag union and phase inheritance."""
        parent = make_template(
            "base",
            description="Base description",
            phase="planning",
            tags=("x", "y"),
        )
        child = make_template("child", parent="base", name="", tags=("y", "z"))
        merged = merge_templates(parent, child)

        assert merged.id == "child"
        assert merged.parent == "base"
        assert merged.name == "Base"
        assert merged.description == "Base description"
        assert merged.phase == "planning"
        assert merged.tags == ("x", "y", "z")
        assert merged.content == "CHILD"


class TestInheritanceChain:
    """Tests for get_inheritance_chain()."""

    def test_chain_leaf_to_root(self) -> None:
        """Test that the chain lists ids from leaf to root."""
        store = DictStore(
            make_template("root"),
            make_template("mid", parent="root"),
            make_template("leaf", parent="mid"),
        )
        assert InheritanceResolver(store).get_inheritance_chain("leaf") == [
            "leaf",
            "mid",
            "root",
        ]

    def test_cycle_raises(self) -> None:
        """Test that a two-template cycle raises with the repeating chain."""
        store = DictStore(make_template("id1", parent="id2"), make_template("id2", parent="id1"))
        with pytest.raises(CircularInheritanceError) as exc_info:
            InheritanceResolver(store).get_inheritance_chain("id1")
        assert exc_info.value.chain == ("id1", "id2", "id1")

    def test_self_parent_is_a_cycle(self) -> None:
        """Test that a template naming itself as parent is rejected."""
        store = DictStore(make_template("solo", parent="solo"))
        with pytest.raises(CircularInheritanceError) as exc_info:
            InheritanceResolver(store).resolve_template("solo")
        assert exc_info.value.chain == ("solo", "solo")

    def test_missing_start_raises(self) -> None:
        """Test that an unknown id raises MissingTemplateError."""
        with pytest.raises(MissingTemplateError) as exc_info:
            InheritanceResolver(DictStore()).get_inheritance_chain("ghost")
        assert exc_info.value.template_id == "ghost"
        assert exc_info.value.referenced_by is None

    def test_missing_parent_raises(self) -> None:
        """Test that a dangling parent link names the referencing template."""
        store = DictStore(make_template("orphan", parent="ghost"))
        with pytest.raises(MissingTemplateError) as exc_info:
            InheritanceResolver(store).resolve_template("orphan")
        assert exc_info.value.template_id == "ghost"
        assert exc_info.value.referenced_by == "orphan"


class TestResolveTemplate:
    """Tests for resolve_template() and its cache."""

    def test_parentless_template_is_unchanged(self) -> None:
        """Test that a root template comes back as stored."""
        root = make_template("root")
        assert InheritanceResolver(DictStore(root)).resolve_template("root") is root

    def test_splice_across_generations(self) -> None:
        """Test that content folds from the root down to the leaf."""
        store = DictStore(
            make_template("g", content="G"),
            make_template("p", parent="g", content="{{> parent}}P"),
            make_template("c", parent="p", content="{{> parent}}C"),
        )
        resolved = InheritanceResolver(store).resolve_template("c")
        assert resolved.content == "GPC"

    def test_variables_merge_root_first(self) -> None:
        """Test that variables accumulate from root to leaf."""
        store = DictStore(
            make_template("base", variables=(VariableSpec(name="title"), VariableSpec(name="owner"))),
            make_template(
                "doc",
                parent="base",
                variables=(VariableSpec(name="owner", required=True), VariableSpec(name="extra")),
            ),
        )
        resolved = InheritanceResolver(store).resolve_template("doc")
        assert [v.name for v in resolved.variables] == ["title", "owner", "extra"]
        assert resolved.variables[1].required is True

    def test_result_is_cached(self) -> None:
        """Test that a second resolve is served from the cache."""
        store = DictStore(make_template("base"), make_template("doc", parent="base"))
        resolver = InheritanceResolver(store)
        first = resolver.resolve_template("doc")
        lookups = store.lookups
        assert resolver.resolve_template("doc") is first
        assert store.lookups == lookups

    def test_invalidate_ancestor_drops_descendants(self) -> None:
        """Test that invalidating a parent refreshes templates built on it."""
        base = make_template("base", content="OLD")
        store = DictStore(base, make_template("doc", parent="base", content="{{> parent}}!"))
        resolver = InheritanceResolver(store)
        assert resolver.resolve_template("doc").content == "OLD!"

        store.templates["base"] = replace(base, content="NEW")
        assert resolver.resolve_template("doc").content == "OLD!"

        resolver.invalidate("base")
        assert resolver.resolve_template("doc").content == "NEW!"

    def test_invalidate_unrelated_keeps_entry(self) -> None:
        """Test that unrelated invalidation leaves cached results alone."""
        store = DictStore(make_template("base"), make_template("doc", parent="base"))
        resolver = InheritanceResolver(store)
        first = resolver.resolve_template("doc")
        resolver.invalidate("other")
        assert resolver.resolve_template("doc") is first

    def test_clear_drops_everything(self) -> None:
        """Test that clear() forces re-resolution."""
        store = DictStore(make_template("base"), make_template("doc", parent="base"))
        resolver = InheritanceResolver(store)
        first = resolver.resolve_template("doc")
        resolver.clear()
        second = resolver.resolve_template("doc")
        assert second == first
        assert second is not first


class TestConcurrentResolution:
    """Tests for resolving while the store changes underneath."""

    def test_resolve_during_invalidation_and_clear(self) -> None:
        """Test that readers racing a writer never leave a stale result cached."""
        base = make_template("base", content="v0")
        store = DictStore(base, make_template("doc", parent="base", content="{{> parent}}+"))
        resolver = InheritanceResolver(store)
        versions = 200

        def read(_: int) -> set[str]:
            return {resolver.resolve_template("doc").content for _ in range(50)}

        def write() -> None:
            for number in range(1, versions + 1):
                store.templates["base"] = replace(base, content=f"v{number}")
                if number % 10 == 0:
                    resolver.clear()
                else:
                    resolver.invalidate("base")

        with ThreadPoolExecutor(max_workers=8) as pool:
            readers = [pool.submit(read, n) for n in range(7)]
            writer = pool.submit(write)
            writer.result()
            seen = set().union(*(future.result() for future in readers))

        expected = {f"v{n}+" for n in range(versions + 1)}
        assert seen <= expected
        assert resolver.resolve_template("doc").content == f"v{versions}+"
