"""Tests for collection definition loading and expansion."""

import json
from pathlib import Path

import pytest

from islet.errors import MultipleChildrenError, ParseError, SourceNotFoundError
from islet.models.collection import CollectionDefinition
from islet.services.collections import (
    build_collection_page,
    destination_key,
    load_definition,
    register_collection,
)
from islet.services.registry import ContentRegistry


def _write(root: Path, relative: str, text: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _definition(**overrides) -> dict:
    definition = {
        "source": "content",
        "single-path": "/blog/",
        "single-layout": "post",
        "content-fields": {"body": {}},
    }
    definition.update(overrides)
    return definition


def _register_definition(tmp_path: Path, registry: ContentRegistry, name: str, definition: dict):
    text = json.dumps(definition)
    root = tmp_path / "views" / "collections"
    path = _write(root, f"{name}.json", text)
    return register_collection(path, text, root, registry)


@pytest.fixture
def registry(tmp_path: Path) -> ContentRegistry:
    return ContentRegistry(tmp_path)


class TestDefinition:
    def test_hyphenated_keys_are_accepted(self):
        definition = load_definition(Path("blog.json"), json.dumps(_definition(**{"index-path": "/posts/"})))
        assert definition.single_path == "/blog/"
        assert definition.index_path == "/posts/"
        assert definition.single_layout == "post"
        assert list(definition.content_fields) == ["body"]

    def test_single_path_preferred_over_index_path(self):
        definition = CollectionDefinition(source="c", single_path="/one/", index_path="/all/")
        assert destination_key(definition, "posts/hello") == "/one/posts/hello"

    def test_index_path_used_without_single_path(self):
        definition = CollectionDefinition(source="c", index_path="/all/")
        assert destination_key(definition, "hello") == "/all/hello"

    def test_prefix_without_trailing_slash(self):
        definition = CollectionDefinition(source="c", single_path="/blog")
        assert destination_key(definition, "posts/hello") == "/blog/posts/hello"

    def test_malformed_json_raises(self):
        with pytest.raises(ParseError):
            load_definition(Path("blog.json"), "{not json")

    def test_missing_source_key_raises(self):
        with pytest.raises(ParseError) as exc_info:
            load_definition(Path("blog.json"), '{"single-layout": "post"}')
        assert "blog.json" in str(exc_info.value)


class TestBuildCollectionPage:
    def test_field_and_collection_data_merge_into_page_data(self, registry):
        definition = CollectionDefinition.model_validate(_definition())
        content = (
            "<div islet-collection-body><p>Hello</p></div>"
            '<script islet-collection-data>{"title": "Hello"}</script>'
            "<footer>end</footer>"
        )
        page = build_collection_page(definition, "/blog/hello", content, registry, "hello.md")
        assert page.path == "/blog/hello"
        assert page.data == {"body": "<p>Hello</p>", "title": "Hello", "layout": "post"}
        assert page.content == "<footer>end</footer>"

    def test_collection_data_wins_over_field_markup(self, registry):
        definition = CollectionDefinition.model_validate(_definition())
        content = '<div islet-collection-body>x</div><i islet-collection-data>{"body": "meta"}</i>'
        page = build_collection_page(definition, "k", content, registry, "k.md")
        assert page.data["body"] == "meta"

    def test_only_last_field_enters_page_data(self, registry):
        definition = CollectionDefinition.model_validate(
            _definition(**{"content-fields": {"summary": {}, "body": {}}})
        )
        content = (
            "<div islet-collection-summary>short</div>"
            "<div islet-collection-body>long</div>"
            '<i islet-collection-data>{"n": 1}</i>'
        )
        page = build_collection_page(definition, "k", content, registry, "k.md")
        assert page.fields == {"summary": "short", "body": "long"}
        assert page.data == {"body": "long", "n": 1, "layout": "post"}
        assert page.content == ""

    def test_data_marker_removed_once_across_fields(self, registry):
        definition = CollectionDefinition.model_validate(
            _definition(**{"content-fields": {"a": {}, "b": {}, "c": {}}})
        )
        content = '<i islet-collection-data>{"n": 1}</i><p>kept</p>'
        page = build_collection_page(definition, "k", content, registry, "k.md")
        assert page.data == {"n": 1, "layout": "post"}
        assert page.content == "<p>kept</p>"

    def test_no_fields_leaves_data_marker_in_place(self, registry):
        definition = CollectionDefinition.model_validate(_definition(**{"content-fields": {}}))
        content = '<i islet-collection-data>{"n": 1}</i>'
        page = build_collection_page(definition, "k", content, registry, "k.md")
        assert page.data == {"layout": "post"}
        assert page.content == content

    def test_field_validation_errors_propagate(self, registry):
        definition = CollectionDefinition.model_validate(_definition())
        content = "<div islet-collection-body><p>a</p><p>b</p></div>"
        with pytest.raises(MultipleChildrenError):
            build_collection_page(definition, "k", content, registry, "k.md")


class TestRegisterCollection:
    def test_content_file_registered_under_prefixed_key(self, tmp_path, registry):
        _write(tmp_path, "content/posts/hello.md", "<div islet-collection-body>Hi</div>")
        outcomes = _register_definition(tmp_path, registry, "blog", _definition())

        assert "/blog/posts/hello" in registry.pages
        assert registry.pages["/blog/posts/hello"].data["body"] == "Hi"
        assert [o.ok for o in outcomes] == [True]
        assert registry.collections["blog"].page is registry.pages["/blog/posts/hello"]

    def test_missing_source_directory_raises(self, tmp_path, registry):
        with pytest.raises(SourceNotFoundError):
            _register_definition(tmp_path, registry, "blog", _definition(source="nowhere"))
        assert "blog" not in registry.collections

    def test_bad_content_file_isolated(self, tmp_path, registry):
        _write(tmp_path, "content/a.md", "<div islet-collection-body>A</div>")
        _write(tmp_path, "content/b.md", "<div islet-collection-body>1</div><p islet-collection-body>2</p>")
        outcomes = _register_definition(tmp_path, registry, "blog", _definition())

        assert set(registry.pages) == {"/blog/a"}
        assert [o.path.name for o in outcomes if not o.ok] == ["b.md"]

    def test_only_collection_extension_is_expanded(self, tmp_path, registry):
        _write(tmp_path, "content/a.md", "<div islet-collection-body>A</div>")
        _write(tmp_path, "content/image.png", "binary-ish")
        _register_definition(tmp_path, registry, "blog", _definition())
        assert set(registry.pages) == {"/blog/a"}
