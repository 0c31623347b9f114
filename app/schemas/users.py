"""User profile schemas."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a profile timestamp.

    Accepts native datetimes (Firestore SDK), export maps carrying
    ``_firestore_timestamp`` or ``_seconds``/``_nanoseconds``, and ISO-8601
    strings. Anything else parses to None.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value

    if isinstance(value, dict):
        if "_firestore_timestamp" in value:
            return parse_timestamp(value["_firestore_timestamp"])
        if "_seconds" in value:
            try:
                seconds = int(value["_seconds"])
                nanoseconds = int(value.get("_nanoseconds") or 0)
                millis = seconds * 1000 + nanoseconds // 1_000_000
                return datetime.fromtimestamp(millis / 1000, tz=UTC)
            except (TypeError, ValueError, OverflowError, OSError):
                return None
        return None

    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None

    return None


class UserProfile(BaseModel):
    """Role-bearing profile document, keyed by the identity uid."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    uid: str
    email: str | None = None
    active_role: str | None = Field(default=None, alias="activeRole")
    profile: dict[str, Any] | None = None
    platforms: list[str] | None = None
    preferences: dict[str, Any] | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")
    last_login_at: datetime | None = Field(default=None, alias="lastLoginAt")
    last_login_platform: str | None = Field(default=None, alias="lastLoginPlatform")

    @field_validator("created_at", "last_login_at", mode="before")
    @classmethod
    def _parse_timestamps(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @field_validator("platforms", mode="before")
    @classmethod
    def _parse_platforms(cls, value: Any) -> list[str] | None:
        if value is None:
            return None
        return [str(item) for item in value]

    @classmethod
    def from_document(cls, uid: str, data: dict[str, Any]) -> "UserProfile":
        """Build a profile from raw document data.

        Raises:
            pydantic.ValidationError: If the document is malformed
        """
        return cls.model_validate({**data, "uid": uid})

    @property
    def name(self) -> str | None:
        """Display name from the nested profile mapping."""
        if not self.profile:
            return None
        name = self.profile.get("name")
        return name if isinstance(name, str) else None


class UserProfileResponse(BaseModel):
    """Public view of a profile document."""

    uid: str
    email: str | None = None
    active_role: str | None = None
    name: str | None = None
    profile: dict[str, Any] | None = None
    platforms: list[str] | None = None
    preferences: dict[str, Any] | None = None
    created_at: datetime | None = None
    last_login_at: datetime | None = None
    last_login_platform: str | None = None

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserProfileResponse":
        """Build the public view of a profile document."""
        return cls(
            uid=profile.uid,
            email=profile.email,
            active_role=profile.active_role,
            name=profile.name,
            profile=profile.profile,
            platforms=profile.platforms,
            preferences=profile.preferences,
            created_at=profile.created_at,
            last_login_at=profile.last_login_at,
            last_login_platform=profile.last_login_platform,
        )
