from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from api.utils.ids import canonical_id


class Association(BaseModel):
    from_id: str = Field(description="Canonical ID of the source object")
    to_id: str = Field(description="Canonical ID of the target object")
    type_id: int | None = Field(None, description="HubSpot association type ID")

    @classmethod
    def from_batch_result(cls, result: dict[str, Any]) -> list[Association]:
        """Flatten one entry of a v4 batch association read into edges."""

        from_id = canonical_id(result["from"]["id"])
        out = []
        for to in result.get("to") or []:
            types = to.get("associationTypes") or [{}]
            out.append(cls(from_id=from_id, to_id=canonical_id(to["toObjectId"]), type_id=types[0].get("typeId")))
        return out

    @classmethod
    def from_object(cls, obj: dict[str, Any], association_key: str) -> list[Association]:
        """Extract edges from the `associations` block of a v3 object read."""

        from_id = canonical_id(obj["id"])
        results = ((obj.get("associations") or {}).get(association_key) or {}).get("results") or []
        return [cls(from_id=from_id, to_id=canonical_id(r["id"])) for r in results]
