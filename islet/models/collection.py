from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from islet.models.page import Page


class CollectionDefinition(BaseModel):
    """A collection definition file, as read from ``views/collections``.

    The JSON keys are hyphenated (``single-path``, ``content-fields`` ...);
    the model accepts them through aliases.
    """

    model_config = ConfigDict(populate_by_name=True)

    source: str
    index_path: Optional[str] = Field(default=None, alias="index-path")
    single_path: Optional[str] = Field(default=None, alias="single-path")
    single_layout: Optional[str] = Field(default=None, alias="single-layout")
    content_fields: Dict[str, Any] = Field(default_factory=dict, alias="content-fields")

    # Last page generated from this collection; diagnostic only
    page: Optional[Page] = Field(default=None, exclude=True)

    @property
    def destination_prefix(self) -> str:
        return self.single_path or self.index_path or ""
