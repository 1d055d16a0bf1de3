"""Request schemas for the JSON endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator

from upcora.models import UserRole


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ----------------- Auth -----------------

class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    name: Optional[str] = Field(None, max_length=120)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class RefreshRequest(_CamelModel):
    refresh_token: str = Field(..., alias="refreshToken")


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=120)
    email: Optional[EmailStr] = None


class PasswordChangeRequest(_CamelModel):
    current_password: str = Field(..., alias="currentPassword")
    new_password: str = Field(..., min_length=6, max_length=72, alias="newPassword")


# ----------------- Uploads / games -----------------

class UrlUploadRequest(BaseModel):
    url: HttpUrl


class ProcessRequest(_CamelModel):
    upload_id: int = Field(..., alias="uploadId")


class GradeRequest(BaseModel):
    answers: Dict[str, Any] = Field(default_factory=dict)


class ScoreSubmission(_CamelModel):
    score: float = Field(..., ge=0)
    max_score: float = Field(..., ge=1, alias="maxScore")
    time_spent: float = Field(..., ge=0, alias="timeSpent")
    correct_answers: int = Field(..., ge=0, alias="correctAnswers")
    total_questions: int = Field(..., ge=1, alias="totalQuestions")


# ----------------- Admin -----------------

class RoleUpdateRequest(BaseModel):
    role: UserRole
