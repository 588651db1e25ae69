"""In-memory content registry populated during ingestion.

The registry is built once by :func:`islet.services.site.setup`, then sealed.
Compilation only reads from it; nothing is kept in module-level state, so
several sites can be built side by side (e.g. in tests).
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

from jinja2 import DictLoader, Environment

from islet.models.collection import CollectionDefinition
from islet.models.config import SiteConfig
from islet.models.layout import Layout
from islet.models.page import Page

logger = logging.getLogger(__name__)

Helper = Callable[..., str]


class DataEnvironment(Environment):
    """Resolves ``{{ a.b }}`` on mappings by key before attribute.

    Site data is plain JSON, so a key such as ``items`` or ``keys`` wins over
    the dict method of the same name.
    """

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Mapping):
            try:
                return obj[attribute]
            except (KeyError, TypeError):
                pass
        return super().getattr(obj, attribute)


def _make_environment(partials: Dict[str, str]) -> Environment:
    # DictLoader keeps a reference to *partials*, so partials registered
    # after the environment is created are still resolvable by name.
    return DataEnvironment(
        loader=DictLoader(partials),
        autoescape=False,
        keep_trailing_newline=True,
    )


@dataclass
class ContentRegistry:
    source_root: Path
    config: SiteConfig = field(default_factory=SiteConfig)

    site_data: Dict[str, Any] = field(default_factory=dict)
    partials: Dict[str, str] = field(default_factory=dict)
    helpers: Dict[str, Helper] = field(default_factory=dict)
    layouts: Dict[str, Layout] = field(default_factory=dict)
    pages: Dict[str, Page] = field(default_factory=dict)
    collections: Dict[str, CollectionDefinition] = field(default_factory=dict)

    sealed: bool = False
    environment: Environment = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.environment = _make_environment(self.partials)

    def directory(self, relative: str) -> Path:
        return self.source_root / relative

    def _check_open(self) -> None:
        if self.sealed:
            raise RuntimeError("content registry is sealed; ingestion has finished")

    # -- registration -------------------------------------------------------

    def add_data(self, segments: list, value: Any) -> None:
        """Assign *value* at the nested position named by *segments*.

        Intermediate nodes are copied rather than mutated in place, and any
        prior value at the leaf is replaced.
        """
        self._check_open()
        node = self.site_data
        for name in segments[:-1]:
            existing = node.get(name)
            node[name] = dict(existing) if isinstance(existing, dict) else {}
            node = node[name]
        node[segments[-1]] = value

    def add_partial(self, name: str, source: str) -> None:
        self._check_open()
        self.partials[name] = source

    def add_helper(self, name: str, func: Helper) -> None:
        self._check_open()
        if name in self.helpers:
            logger.debug("Registry: helper %s redefined", name)
        self.helpers[name] = func
        self.environment.globals[name] = func

    def add_layout(self, layout: Layout) -> None:
        self._check_open()
        self.layouts[layout.name] = layout

    def add_page(self, key: str, page: Page) -> None:
        self._check_open()
        if key in self.pages:
            logger.debug("Registry: page %s replaced by a later source", key)
        self.pages[key] = page

    def add_collection(self, key: str, definition: CollectionDefinition) -> None:
        self._check_open()
        self.collections[key] = definition

    def merge_site_data(self, custom_data: Dict[str, Any]) -> None:
        self._check_open()
        self.site_data = {**self.site_data, **custom_data}

    def seal(self) -> None:
        self.sealed = True
