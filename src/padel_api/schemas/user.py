from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional
from datetime import datetime
from beanie import PydanticObjectId

from padel_api.core.config import settings

# --- Login ---

class LoginRequest(BaseModel):
    # 'userData' accepts either the user's name or email
    model_config = ConfigDict(populate_by_name=True)

    user_data: str = Field(alias="userData")
    password: str

# --- Store input ---

class UserCreate(BaseModel):
    name: str
    email: str
    password: str
    phone: int
    role: Literal['admin', 'user'] = 'user'
    image: str = settings.DEFAULT_IMAGE

class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    # plaintext; the store hashes it
    password: Optional[str] = None
    phone: Optional[int] = None
    image: Optional[str] = None

# --- Stored record ---

class UserInDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    # MongoDB '_id' mapped to 'id'
    id: PydanticObjectId = Field(..., alias='_id')
    name: str
    email: str
    password: str
    phone: int
    role: Literal['admin', 'user'] = 'user'
    image: str = settings.DEFAULT_IMAGE
    padel_matches: List[PydanticObjectId] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

# --- Responses ---

class PadelMatchOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    id: PydanticObjectId = Field(..., alias='_id')
    club: Optional[str] = None
    played_at: Optional[datetime] = None
    players: List[PydanticObjectId] = Field(default_factory=list)
    result: Optional[str] = None

class UserView(BaseModel):
    """
    A user as returned by the API. Fields outside the caller's visibility are
    left as None and dropped from the response; the password is never part of it.
    """
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    id: PydanticObjectId = Field(..., alias='_id')
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[int] = None
    role: Optional[str] = None
    image: Optional[str] = None
    padel_matches: Optional[List[PadelMatchOut | PydanticObjectId]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class UserResponse(BaseModel):
    message: str
    user: UserView

class LoginResponse(UserResponse):
    token: str

class UserListResponse(BaseModel):
    message: str
    users: List[UserView]
