"""Error hierarchy shared by the ingestion and compilation services.

Every error carries the offending file path (when known) and the underlying
exception that caused it, so that failures surface to the operator as
path-prefixed messages.
"""

from typing import Optional


class IsletError(Exception):
    """Base class for all engine failures."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.cause = cause

    def __str__(self) -> str:
        text = f"{self.path}: {self.message}" if self.path else self.message
        if self.cause is not None:
            text = f"{text} ({self.cause})"
        return text


# ---------------------------------------------------------------------------
# Validation: marker elements that break the one-island rules
# ---------------------------------------------------------------------------

class MarkerError(IsletError):
    """A marker element violates the one-per-document / one-child rules."""


class MultipleMarkerError(MarkerError):
    def __init__(self, path: Optional[str], attribute: str) -> None:
        super().__init__(
            f"only one element with the '{attribute}' attribute is allowed per document",
            path,
        )
        self.attribute = attribute


class MultipleChildrenError(MarkerError):
    def __init__(self, path: Optional[str], attribute: str) -> None:
        super().__init__(
            f"the '{attribute}' element may only have a single child",
            path,
        )
        self.attribute = attribute


# ---------------------------------------------------------------------------
# Parsing and rendering
# ---------------------------------------------------------------------------

class ParseError(IsletError):
    """Malformed JSON, markup, collection schema or template syntax."""


class RenderError(IsletError):
    """The template renderer failed while compiling a page."""


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

class NotFoundError(IsletError, LookupError):
    """A named layout, page or source directory could not be resolved."""


class LayoutNotFoundError(NotFoundError):
    pass


class PageNotFoundError(NotFoundError):
    pass


class SourceNotFoundError(NotFoundError):
    pass


class CyclicLayoutError(IsletError):
    """Following ``parent`` links revisited a layout already in the chain."""

    def __init__(self, chain: list) -> None:
        super().__init__("layout chain is cyclic: " + " -> ".join(chain))
        self.chain = chain


# ---------------------------------------------------------------------------
# File access
# ---------------------------------------------------------------------------

class FileAccessError(IsletError):
    """A source file could not be read or an output file could not be written."""


class OutputWriteError(FileAccessError):
    pass


class OutputPathError(FileAccessError):
    pass


class IngestionError(IsletError):
    """One or more source files failed to register during setup."""

    def __init__(self, failures: list) -> None:
        super().__init__(f"{len(failures)} source file(s) failed to register")
        self.failures = failures
