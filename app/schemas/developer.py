from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime
from typing import Any, Optional


def _split_list(value: Any) -> Any:
    """Accept a JSON array or a comma-separated string; drop blank entries."""
    if value is None:
        return value
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    return value


def _normalise_email(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip().lower()
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("A valid email address is required")
    return value


class DeveloperRegister(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str
    password: str = Field(min_length=6, max_length=128)
    skills: list[str] = []
    tech_stacks: list[str] = []
    project_interests: list[str] = []
    experience: Optional[str] = None
    github_link: Optional[str] = None

    @field_validator("skills", "tech_stacks", "project_interests", mode="before")
    @classmethod
    def split_lists(cls, v: Any) -> Any:
        return _split_list(v)

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v: Any) -> Any:
        return _normalise_email(v)


class DeveloperLogin(BaseModel):
    email: str
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v: Any) -> Any:
        return _normalise_email(v)


class DeveloperUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    skills: Optional[list[str]] = None
    tech_stacks: Optional[list[str]] = None
    project_interests: Optional[list[str]] = None
    experience: Optional[str] = None
    github_link: Optional[str] = None
    profile_picture: Optional[str] = None

    @field_validator("skills", "tech_stacks", "project_interests", mode="before")
    @classmethod
    def split_lists(cls, v: Any) -> Any:
        return _split_list(v)


class DeveloperPublic(BaseModel):
    """Match-relevant fields only; never credentials."""

    id: UUID
    name: str
    skills: list[str] = []
    tech_stacks: list[str] = []
    project_interests: list[str] = []
    experience: Optional[str] = None
    github_link: Optional[str] = None
    profile_picture: Optional[str] = None

    model_config = {"from_attributes": True}


class DeveloperContact(DeveloperPublic):
    email: str


class DeveloperResponse(DeveloperContact):
    created_at: datetime
    updated_at: Optional[datetime] = None


class RegisterResponse(BaseModel):
    message: str
    developer_id: UUID


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    developer: DeveloperResponse
