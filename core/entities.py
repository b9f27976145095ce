"""
Core domain entities for GitStarRanking.
These represent the business objects in our system.
"""

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from typing import Any, Optional

INT32_MIN, INT32_MAX = -(2 ** 31), 2 ** 31 - 1
INT64_MIN, INT64_MAX = -(2 ** 63), 2 ** 63 - 1


@dataclass(frozen=True)
class Repository:
    """
    Repository entity representing a GitHub repository.
    Immutable: build a new record with dataclasses.replace() to change it.

    Only id and stargazers_count are required. None on any other field
    means unknown, which is not the same as "" or 0 or False.
    """
    id: int
    stargazers_count: int
    owner_id: Optional[int] = None
    name: Optional[str] = None
    full_name: Optional[str] = None
    description: Optional[str] = None
    fork: Optional[bool] = None
    homepage: Optional[str] = None
    language: Optional[str] = None

    def __post_init__(self):
        """Validate repository data."""
        if not INT64_MIN <= self.id <= INT64_MAX:
            raise ValueError("id must fit in a 64-bit integer")
        if not 0 <= self.stargazers_count <= INT32_MAX:
            raise ValueError("stargazers_count must be a non-negative 32-bit integer")
        if self.owner_id is not None and not INT32_MIN <= self.owner_id <= INT32_MAX:
            raise ValueError("owner_id must fit in a 32-bit integer")

    @classmethod
    def minimal(cls, id: int, stargazers_count: int) -> "Repository":
        """Build a record where everything but id and stars is unknown."""
        return cls(id=id, stargazers_count=stargazers_count)

    @classmethod
    def from_github(cls, payload: dict[str, Any]) -> "Repository":
        """Factory method to create Repository from a GitHub REST repo object."""
        owner = payload.get("owner") or {}
        return cls(
            id=payload["id"],
            owner_id=owner.get("id"),
            name=payload.get("name"),
            full_name=payload.get("full_name"),
            description=payload.get("description"),
            fork=payload.get("fork"),
            homepage=payload.get("homepage"),
            stargazers_count=payload["stargazers_count"],
            language=payload.get("language"),
        )

    @classmethod
    def column_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def to_row(self) -> tuple:
        """Values in column_names() order, for database writes."""
        return tuple(getattr(self, name) for name in self.column_names())

    @classmethod
    def from_row(cls, row) -> "Repository":
        return cls(*row)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class User:
    """
    A GitHub account whose repositories are tracked.
    stargazers_count is the sum over the user's own (non-fork) repositories.
    """
    id: int
    login: str
    type: Optional[str] = None
    stargazers_count: int = 0
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.id <= 0:
            raise ValueError("id must be positive")
        if not self.login:
            raise ValueError("login is required")

    @classmethod
    def from_github(cls, payload: dict[str, Any]) -> "User":
        return cls(
            id=payload["id"],
            login=payload["login"],
            type=payload.get("type"),
        )


@dataclass
class ScanResult:
    """
    Result of a user full scan.
    """
    users_seen: int = 0
    users_updated: int = 0
    users_skipped: int = 0
    last_user_id: int = 0
    stopped_reason: Optional[str] = None
