# leadership_game/models.py

from pydantic import BaseModel, EmailStr, Field
from typing import Any, List, Optional
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    PARTICIPANT = "participant"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class TaskType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TEXT = "text"
    VIDEO = "video"


# --- Identity carried by a verified bearer token ---
class CurrentUser(BaseModel):
    id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


# --- User Authentication Models ---
class UserCreate(BaseModel):
    username: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)
    role: Optional[Role] = None


class UserLogin(BaseModel):
    email: str
    password: str


class ProfileUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class AdminUserUpdate(ProfileUpdate):
    role: Optional[Role] = None


# --- Game Models ---
class GameCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    accessCode: Optional[str] = None
    startTime: Optional[datetime] = None
    endTime: Optional[datetime] = None
    isActive: bool = True


class GameUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    accessCode: Optional[str] = None
    endTime: Optional[datetime] = None
    isActive: Optional[bool] = None


class GameJoin(BaseModel):
    accessCode: str


# --- Team Models ---
class TeamCreate(BaseModel):
    name: str = Field(min_length=1)
    game: str


class TeamUpdate(BaseModel):
    name: str = Field(min_length=1)


class TeamMemberAdd(BaseModel):
    user: str


# --- Task Models ---
class TaskCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str
    game: str
    type: TaskType
    options: List[str] = Field(default_factory=list)
    correctAnswer: Optional[str] = None
    riskPoints: int = Field(default=0, ge=0)
    rewardPoints: int = Field(default=0, ge=0)
    timeLimit: int = Field(default=15, gt=0)  # minutes
    category: str = "Ledelse"


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[TaskType] = None
    options: Optional[List[str]] = None
    correctAnswer: Optional[str] = None
    riskPoints: Optional[int] = Field(default=None, ge=0)
    rewardPoints: Optional[int] = Field(default=None, ge=0)
    timeLimit: Optional[int] = Field(default=None, gt=0)
    category: Optional[str] = None


# --- Submission Models ---
class SubmissionCreate(BaseModel):
    task: str
    team: str
    answer: Any = None


class SubmissionEvaluate(BaseModel):
    """Partial update: every field left out keeps the submission's current value."""
    isEvaluated: Optional[bool] = None
    isCorrect: Optional[bool] = None
    pointsEarned: Optional[int] = None
    feedback: Optional[str] = None


# --- Reflection Models ---
class ReflectionCreate(BaseModel):
    game: str
    team: str
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)


class ReflectionUpdate(BaseModel):
    answer: str = Field(min_length=1)
