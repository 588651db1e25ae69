from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class Page(BaseModel):
    """One source page, with its marker islands already pulled out."""

    path: str  # source-relative, without extension
    content: str  # markup with marker elements removed
    data: Optional[Dict[str, Any]] = None
    script: Optional[str] = None
    fields: Dict[str, str] = Field(default_factory=dict)  # collection content-field markup
