from typing import Any, Dict, Optional

from jinja2 import Template
from pydantic import BaseModel, ConfigDict


class Layout(BaseModel):
    """A compiled layout template plus the metadata declared in its markup."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    path: str
    content: str
    template: Template
    template_data: Optional[Dict[str, Any]] = None

    @property
    def parent(self) -> Optional[str]:
        """Name of the layout this one is nested inside, if any."""
        if self.template_data and self.template_data.get("parent"):
            return str(self.template_data["parent"])
        return None

    def render(self, context: Dict[str, Any]) -> str:
        return self.template.render(context)
