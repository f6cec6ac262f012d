# teacher_directory/schemas.py

from pydantic import BaseModel, ConfigDict
from typing import List, Optional

# --- Request Models ---

class PersonFields(BaseModel):
    """Fields of a Person as submitted by the add form. Presence is checked by the service."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: Optional[str] = None
    floor: Optional[str] = None
    branch: Optional[str] = None
    directions: Optional[str] = None


class PersonUpdate(PersonFields):
    """Partial update: only the fields that are sent are changed."""


class CredentialIn(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class PasswordChange(BaseModel):
    username: Optional[str] = None
    oldPassword: Optional[str] = None
    newPassword: Optional[str] = None

# --- API Response Models ---

class PersonName(BaseModel):
    name: str


class NameListResponse(BaseModel):
    teachers: List[PersonName]


class PersonOut(BaseModel):
    name: str
    branch: str
    floor: str
    directions: str
    imageUrl: Optional[str] = None


class SearchResponse(BaseModel):
    teachers: List[PersonOut]


class MessageResponse(BaseModel):
    message: str


class CreatedPersonResponse(MessageResponse):
    teacher: PersonOut


class TokenResponse(MessageResponse):
    token: str
    tokenType: str = "bearer"
    expiresIn: int


class ErrorResponse(BaseModel):
    error: str
