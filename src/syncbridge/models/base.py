"""
Shared base for models kept in the persistence store.
"""

from typing import Any, Dict

from pydantic import BaseModel


class StoredModel(BaseModel):
    """A model that round-trips through store documents keyed by ``id``."""

    def to_document(self) -> Dict[str, Any]:
        """Convert to a JSON-safe document (datetimes as ISO strings)."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]):
        """Create an instance from a stored document."""
        data = dict(data)
        data["id"] = doc_id
        return cls.model_validate(data)
