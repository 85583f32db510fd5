"""User Records — one user shape, role-specific extensions as a tagged variant.

Invariants:
    - role is the discriminant; each role maps to exactly one variant
    - Unknown columns from the backend row are ignored, never stored
    - reference_row() carries only the common identity fields
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from crossapp.core.domain_types import USER_REFERENCE_KEY


class _UserBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    full_name: str | None = None
    email: str | None = None
    academy_id: str | None = None

    def reference_row(self, synced_at: str) -> dict:
        """Lightweight reference record written to target namespaces."""
        return {
            USER_REFERENCE_KEY: self.id,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role,  # type: ignore[attr-defined]
            "last_synced": synced_at,
        }


class PlayerProfile(_UserBase):
    role: Literal["player"]
    date_of_birth: str | None = None
    position: str | None = None
    jersey_number: int | None = None
    team_id: str | None = None


class ParentProfile(_UserBase):
    role: Literal["parent"]
    phone: str | None = None
    emergency_contact: str | None = None


class SponsorProfile(_UserBase):
    role: Literal["sponsor"]
    company_name: str | None = None
    sponsorship_level: str | None = None
    website: str | None = None


class StaffProfile(_UserBase):
    role: Literal["coach", "trainer", "admin", "super_admin"]
    specialization: str | None = None
    certifications: list[str] = Field(default_factory=list)


UserRecord = Annotated[
    Union[PlayerProfile, ParentProfile, SponsorProfile, StaffProfile],
    Field(discriminator="role"),
]

USER_RECORD_ADAPTER: TypeAdapter = TypeAdapter(UserRecord)


def parse_user_record(row: dict) -> PlayerProfile | ParentProfile | SponsorProfile | StaffProfile:
    """Validate a backend user row into its role variant."""
    normalized = dict(row)
    normalized["id"] = str(normalized.get("id"))
    if normalized.get("academy_id") is not None:
        normalized["academy_id"] = str(normalized["academy_id"])
    return USER_RECORD_ADAPTER.validate_python(normalized)
