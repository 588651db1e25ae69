"""Programmatic surface: build a site from a source tree and compile it."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from islet.errors import OutputWriteError, PageNotFoundError
from islet.models.config import SiteConfig
from islet.services.collections import register_collection
from islet.services.compiler import compile_page, output_path
from islet.services.ingestion import (
    IngestReport,
    process_directory,
    register_data,
    register_helper,
    register_layout,
    register_page,
    register_partial,
)
from islet.services.registry import ContentRegistry, Helper

logger = logging.getLogger(__name__)


class Site:
    """A sealed content registry plus the report of how it was built."""

    def __init__(self, registry: ContentRegistry, report: IngestReport, silent: bool = False) -> None:
        self.registry = registry
        self.report = report
        self.silent = silent

    @property
    def pages(self):
        return self.registry.pages

    def compile_page(self, key: str, custom_data: Optional[Dict[str, Any]] = None) -> str:
        """Compile the page registered under *key*, without layout warnings."""
        page = self.registry.pages.get(key)
        if page is None:
            raise PageNotFoundError(f"no page registered under {key!r}")
        return compile_page(self.registry, page, custom_data, silent=True)

    def compile_site(self, output_root: Union[str, Path]) -> List[Path]:
        """Compile every page and write it under *output_root*.

        Pages are written one at a time in registry order.  Keys such as
        ``blog/hello`` (a page file) and ``/blog/hello`` (a collection entry)
        are distinct in the registry but share one output file; the later
        page wins and a warning names both.  The first failure aborts the
        whole run.

        Returns:
            The written file paths, each listed once, in first-write order.
        """
        output_root = Path(output_root)
        written: Dict[Path, str] = {}
        for page in self.registry.pages.values():
            body = compile_page(self.registry, page, silent=self.silent)
            target = output_path(output_root, page)
            if target in written:
                logger.warning(
                    "Site: page %s overwrites the output of page %s at %s",
                    page.path, written[target], target,
                )
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(body, encoding="utf-8")
            except OSError as exc:
                raise OutputWriteError("could not write page", str(target), exc) from exc
            written[target] = page.path

        logger.info("Site: compiled %d page(s) into %s", len(written), output_root)
        return list(written)


def setup(
    source_root: Union[str, Path],
    custom_data: Optional[Dict[str, Any]] = None,
    *,
    config: Optional[SiteConfig] = None,
    helpers: Optional[Dict[str, Helper]] = None,
    silent: bool = False,
) -> Site:
    """Ingest the source tree at *source_root* and return a compilable :class:`Site`.

    Partials, data, layouts and helpers are registered first; pages and then
    collections are processed only once those are all in place, since they
    may refer to any of them.  Per-file failures are logged and collected in
    :attr:`Site.report` rather than raised.

    Args:
        source_root: Site source directory (containing ``views/``).
        custom_data: Merged over the site data tree; its keys win.
        config:      Directory, extension and marker settings.
        helpers:     Template helpers registered before any helper files.
        silent:      Suppress missing-layout warnings during compilation.
    """
    config = config or SiteConfig()
    registry = ContentRegistry(Path(source_root), config)
    report = IngestReport()

    for name, func in (helpers or {}).items():
        registry.add_helper(name, func)

    phases = (
        (config.partials_dir, config.template_extension, register_partial, "partial"),
        (config.data_dir, config.data_extension, register_data, "data"),
        (config.layouts_dir, config.template_extension, register_layout, "layout"),
        (config.helpers_dir, config.helper_extension, register_helper, "helper"),
        # Pages and collections depend on everything registered above;
        # collections run last so their pages overwrite same-keyed pages.
        (config.pages_dir, config.template_extension, register_page, "page"),
        (config.collections_dir, config.data_extension, register_collection, "collection"),
    )
    for directory, extension, handler, category in phases:
        report.extend(
            process_directory(registry.directory(directory), extension, handler, registry, category)
        )

    registry.merge_site_data(custom_data or {})
    registry.seal()

    if report.failures:
        logger.warning("Site: %d source file(s) failed to register", len(report.failures))
    logger.info(
        "Site: registered %d layout(s), %d page(s), %d collection(s)",
        len(registry.layouts),
        len(registry.pages),
        len(registry.collections),
    )
    return Site(registry, report, silent)
