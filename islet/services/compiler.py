"""Layout-chain resolution and two-pass page compilation.

A page selects a layout (its ``layout`` data field, else the configured
default).  Layouts may name a ``parent`` in their template metadata, forming a
chain from the page's layout up to a root layout.

Pass 1 unions the template metadata of the whole chain, descendants overriding
ancestors, and exposes it to the page context.  Pass 2 renders the page body,
then feeds it through every layout from leaf to root via the ``body`` slot.
"""

import logging
import posixpath
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from islet.errors import CyclicLayoutError, LayoutNotFoundError, OutputPathError, RenderError
from islet.models.layout import Layout
from islet.models.page import Page
from islet.services.registry import ContentRegistry

logger = logging.getLogger(__name__)

_INDEX_DOCUMENT = "index.html"


def resolve_layout_chain(
    layouts: Mapping[str, Layout],
    name: str,
    default: str,
    silent: bool = False,
) -> List[Layout]:
    """Return the layouts from *name* up to the root layout, leaf first.

    An unregistered name (the starting one or any ``parent``) falls back to
    *default* with a warning, unless *default* is already part of the chain.

    Raises:
        LayoutNotFoundError: *default* itself is not registered.
        CyclicLayoutError:   a ``parent`` link leads back into the chain.
    """
    if default not in layouts:
        raise LayoutNotFoundError(f"default layout {default!r} is not registered")

    if name not in layouts:
        if not silent:
            logger.warning("Layout %s not found. Using %s instead.", name, default)
        name = default

    chain: List[Layout] = []
    visited = set()
    current: Optional[str] = name
    while current is not None:
        if current in visited:
            raise CyclicLayoutError([layout.name for layout in chain] + [current])
        visited.add(current)
        layout = layouts[current]
        chain.append(layout)

        parent = layout.parent
        if parent is not None and parent not in layouts:
            if not silent:
                logger.warning(
                    "Parent layout %s of %s not found. Using %s instead.", parent, current, default
                )
            parent = None if default in visited else default
        current = parent
    return chain


def merge_template_data(chain: List[Layout]) -> Dict[str, Any]:
    """Union the template metadata of *chain*; layouts nearer the leaf win."""
    merged: Dict[str, Any] = {}
    for layout in chain:
        merged = {**(layout.template_data or {}), **merged}
    return merged


def canonical_path(page_path: str) -> str:
    """Return the URL path a page is served at.

    ``blog/post-1`` maps to ``/blog/post-1.html``; an ``index`` page maps to
    its directory, so ``blog/index`` becomes ``/blog/``.
    """
    path = posixpath.join("/", page_path + ".html")
    if posixpath.basename(path) == _INDEX_DOCUMENT:
        path = path[: -len(_INDEX_DOCUMENT)]
    return path


def build_context(
    registry: ContentRegistry,
    page: Page,
    custom_data: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Site data, then page data, then *custom_data*, then the page attributes."""
    config = registry.config
    context: Dict[str, Any] = {**registry.site_data, **(page.data or {}), **(custom_data or {})}
    context[config.script_key] = page.script
    context[config.data_key] = page.data
    context[config.path_key] = canonical_path(page.path)
    context[config.template_data_key] = {}
    return context


def compile_page(
    registry: ContentRegistry,
    page: Page,
    custom_data: Optional[Dict[str, Any]] = None,
    silent: bool = False,
) -> str:
    """Render *page* and nest it inside its layout chain.

    Raises:
        RenderError: a template failed to compile or render, or a helper it
                     called raised.
        LayoutNotFoundError, CyclicLayoutError: see :func:`resolve_layout_chain`.
    """
    config = registry.config
    context = build_context(registry, page, custom_data)
    layout_name = context.get("layout") or config.default_layout

    chain = resolve_layout_chain(registry.layouts, layout_name, config.default_layout, silent)
    context[config.template_data_key] = merge_template_data(chain)

    try:
        body = registry.environment.from_string(page.content).render(context)
    except Exception as exc:
        raise RenderError("page template failed to render", page.path, exc) from exc

    # Deliberately departs from the usual "page context wins" merge: a page
    # data field named "body" never replaces the rendered body a layout gets.
    for layout in chain:
        try:
            body = layout.render({**context, "body": body})
        except Exception as exc:
            raise RenderError(
                f"layout {layout.name!r} failed to render", page.path, exc
            ) from exc
    return body


def output_path(output_root: Path, page: Page) -> Path:
    """Destination file for *page*: ``<output_root>/<page.path>.html``.

    Raises:
        OutputPathError: the page path resolves outside *output_root*.
    """
    root = output_root.resolve()
    target = (root / (page.path.lstrip("/") + ".html")).resolve()
    if root != target and root not in target.parents:
        raise OutputPathError("page resolves outside the output directory", page.path)
    return target
