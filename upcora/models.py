from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON, Text


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    USER = "USER"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    name: Optional[str] = None
    hashed_password: str
    role: UserRole = Field(default=UserRole.USER)
    xp: int = 0
    level: int = 1
    badges: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    last_active_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)

    def public(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "xp": self.xp,
            "level": self.level,
            "badges": list(self.badges or []),
            "lastActiveAt": self.last_active_at.isoformat() if self.last_active_at else None,
            "createdAt": self.created_at.isoformat(),
        }


class Upload(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    file_name: str
    file_url: str
    file_type: str
    original_text: Optional[str] = Field(default=None, sa_column=Column(Text))
    extracted_text: Optional[str] = Field(default=None, sa_column=Column(Text))
    word_count: int = 0
    page_count: Optional[int] = None
    is_processed: bool = False
    processed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)

    def public(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "fileName": self.file_name,
            "fileUrl": self.file_url,
            "fileType": self.file_type,
            "wordCount": self.word_count,
            "pageCount": self.page_count,
            "isProcessed": self.is_processed,
            "processedAt": self.processed_at.isoformat() if self.processed_at else None,
            "createdAt": self.created_at.isoformat(),
        }


class GameSession(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    upload_id: int = Field(foreign_key="upload.id", index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id")
    title: str
    game_type: str = Field(default="INTERACTIVE")
    game_data: str = Field(sa_column=Column(Text))
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)

    def data(self) -> dict:
        return json.loads(self.game_data)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "gameType": self.game_type,
            "isCompleted": self.is_completed,
            "createdAt": self.created_at.isoformat(),
        }


class Score(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    game_session_id: int = Field(foreign_key="gamesession.id", index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id")
    score: float
    max_score: float
    time_spent: float
    correct_answers: int
    total_questions: int
    xp_earned: int
    badges: str = ""  # comma-joined
    created_at: datetime = Field(default_factory=utc_now)

    def public(self) -> dict:
        return {
            "id": self.id,
            "score": self.score,
            "maxScore": self.max_score,
            "timeSpent": self.time_spent,
            "correctAnswers": self.correct_answers,
            "totalQuestions": self.total_questions,
            "xpEarned": self.xp_earned,
            "badges": [b for b in self.badges.split(",") if b],
            "createdAt": self.created_at.isoformat(),
        }


class AuditLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id")
    action: str
    resource: str
    resource_id: Optional[str] = None
    details: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utc_now)
