# src/padel_api/models/user.py

from beanie import Document, Indexed, PydanticObjectId
from pydantic import Field
from typing import List, Literal, Optional, Annotated
from datetime import datetime, timezone

from padel_api.core.config import settings

EMAIL_PATTERN = r"^[a-zA-Z0-9._-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,6}$"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class User(Document):
    """
    Collection layout of a user account, registered with init_beanie so the
    unique indexes on name, email and phone get created. Writes go through
    crud/user.py on the raw collection, so field rules live in user_rules.
    """
    name: Annotated[str, Indexed(unique=True)]
    email: Annotated[str, Indexed(unique=True)]
    # bcrypt hash, never the plaintext
    password: str
    phone: Annotated[int, Indexed(unique=True)]
    role: Literal["admin", "user"] = "user"
    image: str = Field(default=settings.DEFAULT_IMAGE, description="Stored avatar path")
    padel_matches: List[PydanticObjectId] = Field(default_factory=list, description="References into padelMatches")

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "users"


class PadelMatch(Document):
    """A padel match. Owned by the matches service; users only reference it."""
    club: str
    played_at: datetime
    players: List[PydanticObjectId] = Field(default_factory=list)
    result: Optional[str] = None

    class Settings:
        name = "padelMatches"
