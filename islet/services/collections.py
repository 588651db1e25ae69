"""Collection expansion: one generated page per content file.

A collection definition (JSON, under ``views/collections``) names a ``source``
directory of content files, the URL prefix the generated pages live under, the
layout they share and the content fields each file declares::

    {
      "source": "content/posts",
      "single-path": "/blog/",
      "single-layout": "post",
      "content-fields": {"summary": {}, "body": {}}
    }

Each content file marks its fields with ``islet-collection-<field>`` elements
and may carry an ``islet-collection-data`` JSON island with extra metadata.
"""

import json
import logging
import posixpath
from functools import partial
from pathlib import Path
from typing import List

from pydantic import ValidationError

from islet.errors import ParseError, SourceNotFoundError
from islet.models.collection import CollectionDefinition
from islet.models.page import Page
from islet.services.extractor import extract_marker, inner_html, json_object
from islet.services.ingestion import FileOutcome, process_directory
from islet.services.registry import ContentRegistry
from islet.services.walker import relative_stem

logger = logging.getLogger(__name__)


def destination_key(definition: CollectionDefinition, relative: str) -> str:
    """Registry key for a content file at *relative* (no extension) under ``source``."""
    return posixpath.join(definition.destination_prefix, relative)


def build_collection_page(
    definition: CollectionDefinition,
    key: str,
    content: str,
    registry: ContentRegistry,
    source: str,
) -> Page:
    """Extract the declared fields and collection data from one content file."""
    config = registry.config
    fields = {}
    collection_data = {}
    last_field = None

    # The data marker is extracted on every field iteration; once the element
    # has been removed, later iterations find nothing and leave content as is.
    for name in definition.content_fields:
        last_field = name
        extraction = extract_marker(
            content, f"{config.collection_prefix}{name}", inner_html, source, config.html_parser
        )
        content = extraction.content
        if extraction.has_value:
            fields[name] = extraction.value

        extraction = extract_marker(
            content, config.collection_data_marker, json_object, source, config.html_parser
        )
        content = extraction.content
        if extraction.has_value:
            collection_data = extraction.value

    data = {}
    if last_field is not None and last_field in fields:
        data[last_field] = fields[last_field]
    data.update(collection_data)
    data["layout"] = definition.single_layout

    return Page(path=key, content=content, data=data, fields=fields)


def _register_collection_item(
    path: Path,
    content: str,
    root: Path,
    registry: ContentRegistry,
    definition: CollectionDefinition,
) -> None:
    key = destination_key(definition, relative_stem(path, root))
    page = build_collection_page(definition, key, content, registry, str(path))
    registry.add_page(key, page)
    definition.page = page
    logger.debug("Collections: generated page %s from %s", key, path)


def load_definition(path: Path, content: str) -> CollectionDefinition:
    try:
        return CollectionDefinition.model_validate(json.loads(content))
    except (ValueError, ValidationError) as exc:
        raise ParseError("malformed collection definition", str(path), exc) from exc


def register_collection(
    path: Path, content: str, root: Path, registry: ContentRegistry
) -> List[FileOutcome]:
    """Register a collection definition and expand its source directory.

    Raises:
        ParseError:          the definition is not valid JSON or lacks ``source``.
        SourceNotFoundError: ``source`` is not a directory under the site root.
    """
    definition = load_definition(path, content)
    source_dir = (registry.source_root / definition.source).resolve()
    if not source_dir.is_dir():
        raise SourceNotFoundError(
            f"collection source directory {definition.source!r} does not exist", str(path)
        )

    key = relative_stem(path, root)
    registry.add_collection(key, definition)
    logger.info("Collections: expanding %s from %s", key, source_dir)

    return process_directory(
        source_dir,
        registry.config.collection_extension,
        partial(_register_collection_item, definition=definition),
        registry,
        f"collection:{key}",
    )
