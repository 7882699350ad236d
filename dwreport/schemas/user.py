# dwreport/schemas/user.py
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator

from dwreport.core.access import Role
from dwreport.core.config import settings


def _check_password(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if len(value) < settings.MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters")
    return value


class Profile(BaseModel):
    id: str
    auth_user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    employee_id: Optional[str] = None
    designation: Optional[str] = None
    department: Optional[str] = None
    role: str
    active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProfileList(BaseModel):
    users: list[Profile]


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    name: Optional[str] = None
    employee_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("employeeId", "employee_id"))
    department: Optional[str] = None
    designation: Optional[str] = None
    role: Role = Role.STAFF
    active: bool = Field(default=True, validation_alias=AliasChoices("active", "is_active"))


class ProfileUpdate(BaseModel):
    """
    Partial update of a staff profile. Only the fields a client sends are
    applied; `new_password` (and a changed email) are forwarded to the
    identity provider rather than stored on the profile.
    """
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    employee_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("employeeId", "employee_id"))
    department: Optional[str] = None
    designation: Optional[str] = None
    role: Optional[Role] = None
    active: Optional[bool] = Field(default=None, validation_alias=AliasChoices("active", "is_active"))
    new_password: Optional[str] = Field(default=None, validation_alias=AliasChoices("newPassword", "new_password"))

    model_config = ConfigDict(extra="forbid")

    @field_validator("new_password")
    @classmethod
    def check_new_password(cls, value):
        return _check_password(value)

    def profile_changes(self) -> dict:
        # null means "leave as is", same as leaving the field out
        changes = {
            field: value
            for field, value in self.model_dump(exclude_unset=True, exclude={"new_password"}).items()
            if value is not None
        }
        if isinstance(changes.get("role"), Role):
            changes["role"] = changes["role"].value
        return changes

    def identity_changes(self) -> dict:
        changes = {}
        if self.email:
            changes["email"] = self.email
        if self.new_password:
            changes["password"] = self.new_password
        return changes


class PasswordReset(BaseModel):
    user_id: str = Field(validation_alias=AliasChoices("userId", "user_id"), min_length=1)
    new_password: str = Field(validation_alias=AliasChoices("newPassword", "new_password"))

    @field_validator("new_password")
    @classmethod
    def check_new_password(cls, value):
        return _check_password(value)


class PasswordUpdate(BaseModel):
    current_password: str
    new_password: str


class AccessDecision(BaseModel):
    page: str
    access: str
    location: Optional[str] = None
