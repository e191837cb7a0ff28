"""Account and session models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class AccountRole(str, Enum):
    """Which app an account signs in to."""

    STUDENT = "student"
    VENDOR = "vendor"


class Student(BaseModel):
    """Student profile record, keyed by the student's account uid."""

    student_id: str = Field(..., description="Student identifier (account uid)")
    name: str = Field(..., description="Full name")
    email: str = Field(..., description="Email address")
    phone_number: str = Field(default="", description="Contact number")
    college: str = Field(default="", description="College or hostel")
    role: str = Field(default=AccountRole.STUDENT.value, description="Account role")
    created_at: datetime | None = Field(None, description="Account creation timestamp")

    def to_dynamodb_item(self) -> dict[str, Any]:
        item: dict[str, Any] = {
            "student_id": self.student_id,
            "name": self.name,
            "email": self.email,
            "phone_number": self.phone_number,
            "college": self.college,
            "role": self.role,
        }

        if self.created_at is not None:
            item["created_at"] = self.created_at.isoformat()

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Student":
        data: dict[str, Any] = {
            "student_id": item["student_id"],
            "name": item.get("name", ""),
            "email": item.get("email", ""),
            "phone_number": item.get("phone_number", ""),
            "college": item.get("college", ""),
            "role": item.get("role", AccountRole.STUDENT.value),
        }

        if item.get("created_at"):
            data["created_at"] = datetime.fromisoformat(item["created_at"])

        return cls(**data)


class IdentityAccount(BaseModel):
    """Account returned by the identity provider after sign-up or sign-in."""

    uid: str
    email: str
    id_token: str
    refresh_token: str | None = None


class AuthSession(BaseModel):
    """An open signed-in session."""

    session_token: str = Field(..., description="Opaque token presented by the client")
    uid: str = Field(..., description="Account uid")
    email: str = Field(..., description="Account email")
    role: AccountRole = Field(..., description="Student or vendor")
    id_token: str = Field(default="", description="Identity provider token", exclude=True)
    created_at: datetime = Field(..., description="Sign-in timestamp")
