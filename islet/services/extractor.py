"""Marker-element extraction.

A marker element is any element carrying a given attribute (its value and its
tag name are ignored).  :func:`extract_marker` pulls the single marker element
for an attribute out of a markup document, returning the stripped markup and
the value computed from the element's only child.

The element is located in the parsed tree, then its exact source span is cut
out of the original string.  Everything outside that span (entity references,
void-tag spelling, template syntax such as ``{% if a > b %}``) is returned
byte for byte, and identical fragments elsewhere in the document are never
affected.
"""

import json
from html.parser import HTMLParser
from typing import Any, Callable, NamedTuple, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from islet.errors import MultipleChildrenError, MultipleMarkerError, ParseError

# BeautifulSoup output formatter: escapes only &, < and >
_FORMATTER = "minimal"


class Extraction(NamedTuple):
    content: str
    value: Any = None
    has_value: bool = False


def inner_html(element: Tag) -> str:
    return element.decode_contents(formatter=_FORMATTER)


def outer_html(element: Tag) -> str:
    return element.decode(formatter=_FORMATTER)


def json_value(element: Tag) -> Any:
    """Parse the element's inner markup as JSON."""
    return json.loads(inner_html(element))


def json_object(element: Tag) -> dict:
    """Like :func:`json_value`, but the island must hold a JSON object."""
    value = json_value(element)
    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {type(value).__name__}")
    return value


def _offset(markup: str, line: int, column: int) -> int:
    # line is 1-based, column is 0-based
    start = 0
    for _ in range(line - 1):
        start = markup.index("\n", start) + 1
    return start + column


class _ElementEnd(HTMLParser):
    """Finds where the element opening at the start of the markup closes.

    Same-name descendants are counted so nested ``<div>`` elements inside a
    ``<div>`` marker do not end the span early.  An element that is never
    closed runs to the end of the markup, as it does in the parsed tree.
    """

    def __init__(self, name: str, void: bool):
        super().__init__(convert_charrefs=False)
        self.name = name
        self.void = void
        self.depth = 0
        self.end: Optional[int] = None
        self._markup = ""

    def locate(self, markup: str) -> int:
        self._markup = markup
        self.feed(markup)
        self.close()
        return len(markup) if self.end is None else self.end

    def _position(self) -> int:
        return _offset(self._markup, *self.getpos())

    def _end_of_start_tag(self) -> int:
        return self._position() + len(self.get_starttag_text())

    def handle_starttag(self, tag, attrs):
        if self.end is not None or tag != self.name:
            return
        if self.void and self.depth == 0:
            self.end = self._end_of_start_tag()
            return
        self.depth += 1

    def handle_startendtag(self, tag, attrs):
        if self.end is None and self.depth == 0:
            self.end = self._end_of_start_tag()

    def handle_endtag(self, tag):
        if self.end is not None or tag != self.name or self.depth == 0:
            return
        self.depth -= 1
        if self.depth == 0:
            self.end = self._markup.index(">", self._position()) + 1


def _source_span(content: str, element: Tag, path: Optional[str], attribute: str) -> Tuple[int, int]:
    if element.sourceline is None or element.sourcepos is None:
        raise ParseError(f"cannot locate the '{attribute}' element in the source", path)
    start = _offset(content, element.sourceline, element.sourcepos)
    finder = _ElementEnd(element.name, element.can_be_empty_element)
    return start, start + finder.locate(content[start:])


def extract_marker(
    content: str,
    attribute: str,
    process: Callable[[Tag], Any],
    path: Optional[str] = None,
    parser: str = "html.parser",
) -> Extraction:
    """Remove the element carrying *attribute* from *content*.

    Args:
        content:   Markup to search.
        attribute: Marker attribute name selecting the element.
        process:   Called with the element when it has exactly one child;
                   its return value becomes ``Extraction.value``.
        path:      Source path used to label errors.
        parser:    BeautifulSoup tree builder.  It must record source
                   positions (``html.parser`` and ``html5lib`` do).

    Returns:
        An :class:`Extraction`.  When no element carries *attribute* the
        input *content* string is returned untouched; otherwise only the
        element's own source span is removed.

    Raises:
        MultipleMarkerError:   more than one element carries *attribute*.
        MultipleChildrenError: the element has more than one child node.
        ParseError:            *process* failed on the element's child, or
                               the element has no source position.
    """
    soup = BeautifulSoup(content, parser)
    matches = soup.find_all(attrs={attribute: True})

    if not matches:
        return Extraction(content)
    if len(matches) > 1:
        raise MultipleMarkerError(path, attribute)

    element = matches[0]
    if len(element.contents) > 1:
        raise MultipleChildrenError(path, attribute)

    value = None
    has_value = False
    if element.contents:
        try:
            value = process(element)
        except Exception as exc:
            raise ParseError(f"invalid '{attribute}' element", path, exc) from exc
        has_value = True

    start, end = _source_span(content, element, path, attribute)
    return Extraction(content[:start] + content[end:], value, has_value)
