import math
from enum import Enum
from typing import List

from pydantic import BaseModel


# Enums
class UserRole(str, Enum):
    admin = "admin"
    user = "user"


class ProjectStatus(str, Enum):
    planning = "planning"
    in_progress = "in-progress"
    completed = "completed"
    on_hold = "on-hold"
    cancelled = "cancelled"


class ProjectPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


def enum_values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


PROJECT_STATUSES = enum_values(ProjectStatus)
PROJECT_PRIORITIES = enum_values(ProjectPriority)
USER_ROLES = enum_values(UserRole)


# Models
class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


class PageRequest(BaseModel):
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit
