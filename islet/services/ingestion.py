"""Per-category ingestion handlers.

Each handler is called once per discovered file as
``handler(path, content, root, registry)`` and populates one part of the
:class:`~islet.services.registry.ContentRegistry`.  :func:`process_directory`
drives a handler over a directory and isolates failures: a file that fails is
logged and recorded, and the remaining files are still processed.
"""

import importlib.util
import inspect
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Callable, Dict, List, NamedTuple, Optional

from jinja2 import TemplateSyntaxError

from islet.errors import IngestionError, IsletError, ParseError
from islet.models.layout import Layout
from islet.models.page import Page
from islet.services.extractor import extract_marker, json_object, outer_html
from islet.services.registry import ContentRegistry, Helper
from islet.services.walker import find_source_files, read_source, relative_stem

logger = logging.getLogger(__name__)


class FileOutcome(NamedTuple):
    path: Path
    category: str
    error: Optional[IsletError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class IngestReport:
    """Aggregated per-file outcomes of the ingestion phase."""

    outcomes: List[FileOutcome] = field(default_factory=list)

    @property
    def failures(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failures

    def extend(self, outcomes: List[FileOutcome]) -> None:
        self.outcomes.extend(outcomes)

    def raise_on_failure(self) -> None:
        """Raise :class:`IngestionError` if any file failed to register."""
        failures = self.failures
        if failures:
            raise IngestionError([o.error for o in failures])


Handler = Callable[[Path, str, Path, ContentRegistry], Optional[List[FileOutcome]]]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def register_data(path: Path, content: str, root: Path, registry: ContentRegistry) -> None:
    """Parse a JSON data file and graft it onto the site data tree.

    ``views/data/nav/main.json`` becomes ``site_data["nav"]["main"]``.
    """
    try:
        value = json.loads(content)
    except ValueError as exc:
        raise ParseError("malformed JSON data file", str(path), exc) from exc
    registry.add_data(relative_stem(path, root).split("/"), value)


def register_partial(path: Path, content: str, root: Path, registry: ContentRegistry) -> None:
    registry.add_partial(path.stem, content)


def register_layout(path: Path, content: str, root: Path, registry: ContentRegistry) -> None:
    """Extract a layout's template metadata, then compile what remains."""
    config = registry.config
    extraction = extract_marker(
        content, config.template_data_marker, json_object, str(path), config.html_parser
    )
    try:
        template = registry.environment.from_string(extraction.content)
    except TemplateSyntaxError as exc:
        raise ParseError("layout template does not compile", str(path), exc) from exc

    registry.add_layout(
        Layout(
            name=path.stem,
            path=str(path),
            content=extraction.content,
            template=template,
            template_data=extraction.value if extraction.has_value else None,
        )
    )


def _load_module(path: Path) -> ModuleType:
    spec = importlib.util.spec_from_file_location(f"islet_helpers.{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ParseError("not an importable Python module", str(path))
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise ParseError("helper module failed to import", str(path), exc) from exc
    return module


def exported_helpers(module: ModuleType) -> Dict[str, Helper]:
    """Return the helper functions a module exports.

    A module may declare its helpers explicitly with a ``HELPERS`` dict;
    otherwise every public function defined in the module itself is exported.
    """
    declared = getattr(module, "HELPERS", None)
    if declared is not None:
        return dict(declared)
    return {
        name: obj
        for name, obj in vars(module).items()
        if not name.startswith("_")
        and inspect.isfunction(obj)
        and obj.__module__ == module.__name__
    }


def register_helper(path: Path, content: str, root: Path, registry: ContentRegistry) -> None:
    module = _load_module(path)
    helpers = exported_helpers(module)
    if not helpers:
        logger.warning("Ingestion: helper module %s exports no functions", path)
    for name, func in helpers.items():
        registry.add_helper(name, func)


def register_page(path: Path, content: str, root: Path, registry: ContentRegistry) -> None:
    """Pull the data and script islands out of a page and register it."""
    config = registry.config
    source = str(path)

    data = extract_marker(content, config.data_marker, json_object, source, config.html_parser)
    script = extract_marker(data.content, config.script_marker, outer_html, source, config.html_parser)

    key = relative_stem(path, root)
    registry.add_page(
        key,
        Page(
            path=key,
            content=script.content,
            data=data.value if data.has_value else None,
            script=script.value if script.has_value else None,
        ),
    )


# ---------------------------------------------------------------------------
# Directory driver
# ---------------------------------------------------------------------------

def process_directory(
    directory: Path,
    extension: str,
    handler: Handler,
    registry: ContentRegistry,
    category: str,
) -> List[FileOutcome]:
    """Run *handler* over every *extension* file under *directory*.

    Returns:
        One :class:`FileOutcome` per file, plus any outcomes the handler
        itself returns (collection definitions report their content files).
    """
    outcomes: List[FileOutcome] = []
    for path in find_source_files(directory, extension):
        try:
            nested = handler(path, read_source(path), directory, registry)
        except IsletError as exc:
            logger.error("Ingestion: %s file failed – %s", category, exc)
            outcomes.append(FileOutcome(path, category, exc))
            continue
        logger.debug("Ingestion: registered %s %s", category, path)
        outcomes.append(FileOutcome(path, category))
        if nested:
            outcomes.extend(nested)
    return outcomes
