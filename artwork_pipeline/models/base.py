"""JsonModel base class for stored records and messages."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class JsonModel(BaseModel):
    """Base model with camelCase/snake_case conversion.

    - JSON output uses camelCase (for notification and result payloads)
    - Internal Python uses snake_case
    - Fields with an explicit alias keep it (stored wire names such as
      ``raw-key``)
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def model_dump(self, **kwargs) -> dict:
        """Override model_dump - JSON-compatible values by default."""
        kwargs.setdefault("mode", "json")
        return super().model_dump(**kwargs)

    def to_item(self) -> dict[str, Any]:
        """Convert to a document store item using stored field names."""
        return self.model_dump(by_alias=True, exclude_none=True)
