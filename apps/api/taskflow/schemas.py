from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field
from pydantic import field_validator


def _strip(value: object) -> object:
  if isinstance(value, str):
    return value.strip()
  return value


class UserOut(BaseModel):
  id: str
  name: str
  email: str
  avatar: str = ""


class SignupIn(BaseModel):
  name: str = Field(min_length=2, max_length=50)
  email: str = Field(min_length=3, max_length=320)
  password: str = Field(min_length=6, max_length=200)

  @field_validator("name", mode="before")
  @classmethod
  def _strip_name(cls, v: object) -> object:
    return _strip(v)

  @field_validator("email", mode="before")
  @classmethod
  def _normalize_email(cls, v: object) -> object:
    v = _strip(v)
    if isinstance(v, str):
      if "@" not in v:
        raise ValueError("Please enter a valid email")
      return v.lower()
    return v


class LoginIn(BaseModel):
  email: str
  password: str


class AuthOut(BaseModel):
  user: UserOut
  token: str


class PaginationOut(BaseModel):
  page: int
  limit: int
  total: int
  pages: int


class BoardCreateIn(BaseModel):
  title: str = Field(min_length=1, max_length=100)
  description: str = Field(default="", max_length=500)
  background: str | None = Field(default=None, max_length=32)

  @field_validator("title", "description", mode="before")
  @classmethod
  def _strip_text(cls, v: object) -> object:
    return _strip(v)


class BoardUpdateIn(BaseModel):
  title: str | None = Field(default=None, min_length=1, max_length=100)
  description: str | None = Field(default=None, max_length=500)
  background: str | None = Field(default=None, max_length=32)

  @field_validator("title", "description", mode="before")
  @classmethod
  def _strip_text(cls, v: object) -> object:
    return _strip(v)


class BoardOut(BaseModel):
  id: str
  title: str
  description: str
  background: str
  ownerId: str
  owner: UserOut | None = None
  members: list[UserOut] = []
  createdAt: datetime
  updatedAt: datetime


class BoardPageOut(BaseModel):
  boards: list[BoardOut]
  pagination: PaginationOut


class MemberAddIn(BaseModel):
  userId: str


class ListCreateIn(BaseModel):
  title: str = Field(min_length=1, max_length=100)

  @field_validator("title", mode="before")
  @classmethod
  def _strip_title(cls, v: object) -> object:
    return _strip(v)


class ListUpdateIn(BaseModel):
  title: str | None = Field(default=None, min_length=1, max_length=100)

  @field_validator("title", mode="before")
  @classmethod
  def _strip_title(cls, v: object) -> object:
    return _strip(v)


class ListOut(BaseModel):
  id: str
  boardId: str
  title: str
  position: int
  createdAt: datetime
  updatedAt: datetime


class ListOrderEntryIn(BaseModel):
  listId: str
  position: int


class ListReorderIn(BaseModel):
  lists: list[ListOrderEntryIn] = Field(min_length=1)


class ListMoveIn(BaseModel):
  newIndex: int


class ListOrderOut(BaseModel):
  id: str
  position: int


class LabelIn(BaseModel):
  text: str = Field(min_length=1, max_length=30)
  color: str = Field(default="#6366f1", max_length=32)


class LabelOut(BaseModel):
  text: str
  color: str


class TaskCreateIn(BaseModel):
  title: str = Field(min_length=1, max_length=200)
  description: str = Field(default="", max_length=2000)
  priority: Literal["low", "medium", "high", "urgent"] = "medium"
  dueDate: date | None = None
  labels: list[LabelIn] = []

  @field_validator("title", "description", mode="before")
  @classmethod
  def _strip_text(cls, v: object) -> object:
    return _strip(v)


class TaskUpdateIn(BaseModel):
  title: str | None = Field(default=None, min_length=1, max_length=200)
  description: str | None = Field(default=None, max_length=2000)
  priority: Literal["low", "medium", "high", "urgent"] | None = None
  dueDate: date | None = None
  labels: list[LabelIn] | None = None

  @field_validator("title", "description", mode="before")
  @classmethod
  def _strip_text(cls, v: object) -> object:
    return _strip(v)


class TaskOut(BaseModel):
  id: str
  boardId: str
  listId: str
  title: str
  description: str
  position: int
  priority: str
  dueDate: date | None
  labels: list[LabelOut]
  assignees: list[UserOut]
  createdAt: datetime
  updatedAt: datetime


class TaskReorderIn(BaseModel):
  taskId: str
  sourceListId: str
  destinationListId: str
  newPosition: int


class TaskMovedOut(BaseModel):
  task: TaskOut
  sourceListId: str
  destinationListId: str
  newPosition: int


class TaskAssignIn(BaseModel):
  userId: str
  action: Literal["assign", "unassign"]


class TaskPageOut(BaseModel):
  tasks: list[TaskOut]
  pagination: PaginationOut


class BoardDetailOut(BaseModel):
  board: BoardOut
  lists: list[ListOut]
  tasks: list[TaskOut]


class ActivityOut(BaseModel):
  id: str
  boardId: str
  actor: UserOut | None
  action: str
  entityType: str
  entityTitle: str
  details: str
  createdAt: datetime


class ActivityPageOut(BaseModel):
  activities: list[ActivityOut]
  pagination: PaginationOut
