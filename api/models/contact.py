from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, Field

from api.models.credits import CreditBalance
from api.utils.ids import canonical_id


class Contact(BaseModel):
    PROPERTIES: ClassVar[list[str]] = ["student_id", "firstname", "lastname", "email", *CreditBalance.PROPERTIES]

    id: str = Field(description="HubSpot record ID of the contact")
    student_id: str = Field(description="The student's ID")
    email: str = Field(description="The student's email address")
    firstname: str = Field("", description="First name")
    lastname: str = Field("", description="Last name")

    @classmethod
    def from_hubspot(cls, obj: dict[str, Any]) -> Contact:
        props = obj.get("properties") or {}
        return cls(
            id=canonical_id(obj["id"]),
            student_id=props.get("student_id") or "",
            email=props.get("email") or "",
            firstname=props.get("firstname") or "",
            lastname=props.get("lastname") or "",
        )

    @property
    def display_name(self) -> str:
        return f"{self.firstname} {self.lastname}".strip()
