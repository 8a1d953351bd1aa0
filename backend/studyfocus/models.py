"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table and uses relationships where appropriate.
A study owns exactly one profile and has exactly one `LEADER`
membership; the write side in `services` keeps that invariant and the
search engine relies on it.
"""

from enum import Enum
from typing import List, Optional
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship


class Category(str, Enum):
    CS = "CS"
    MATH = "MATH"
    LANGUAGE = "LANGUAGE"
    CERTIFICATION = "CERTIFICATION"
    CAREER = "CAREER"
    HOBBY = "HOBBY"
    ETC = "ETC"


class StudyRole(str, Enum):
    LEADER = "LEADER"
    MEMBER = "MEMBER"


class StudySortType(str, Enum):
    """Orderings supported by study search; see `search._ORDERINGS`."""
    LATEST = "LATEST"
    TRUST_SCORE_DESC = "TRUST_SCORE_DESC"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `username`: unique display/login name
    - `trust_score`: reputation number maintained elsewhere; the score
      of a study's leader is used as a ranking signal
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    trust_score: int = 0
    created_at: datetime = Field(default_factory=_utcnow)


class Study(SQLModel, table=True):
    """A study group. Descriptive fields live on `StudyProfile`."""
    id: Optional[int] = Field(default=None, primary_key=True)
    max_member_count: int
    created_at: datetime = Field(default_factory=_utcnow, index=True)
    profile: Optional['StudyProfile'] = Relationship(
        back_populates='study', sa_relationship_kwargs={'uselist': False}
    )
    members: List['StudyMember'] = Relationship(back_populates='study')
    bookmarks: List['Bookmark'] = Relationship(back_populates='study')


class StudyProfile(SQLModel, table=True):
    """Title, bio, category and address of a study (1:1 with `Study`)."""
    id: Optional[int] = Field(default=None, primary_key=True)
    study_id: int = Field(foreign_key='study.id', unique=True)
    title: str
    bio: str = ''
    category: Category = Field(index=True)
    province: Optional[str] = Field(default=None, index=True)
    district: Optional[str] = Field(default=None, index=True)
    study: Optional[Study] = Relationship(back_populates='profile')


class StudyMember(SQLModel, table=True):
    """Membership of a user in a study with a `StudyRole`."""
    __table_args__ = (UniqueConstraint('study_id', 'user_id'),)

    id: Optional[int] = Field(default=None, primary_key=True)
    study_id: int = Field(foreign_key='study.id', index=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    role: StudyRole = StudyRole.MEMBER
    study: Optional[Study] = Relationship(back_populates='members')


class Bookmark(SQLModel, table=True):
    """A user's saved-for-later marker on a study, one per (study, user)."""
    __table_args__ = (UniqueConstraint('study_id', 'user_id'),)

    id: Optional[int] = Field(default=None, primary_key=True)
    study_id: int = Field(foreign_key='study.id', index=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    created_at: datetime = Field(default_factory=_utcnow)
    study: Optional[Study] = Relationship(back_populates='bookmarks')
