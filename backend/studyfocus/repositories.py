"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
studies, memberships, bookmarks). Repositories return SQLModel objects;
commits are left to the calling service so that a study, its profile
and its leader membership land in one transaction.
"""

from typing import Optional
from sqlmodel import Session, select
from sqlalchemy import func
from . import models


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)


class StudyRepository:
    """Persistence for `Study` together with its `StudyProfile`."""
    def __init__(self, session: Session):
        self.session = session

    def add(self, study: models.Study, profile: models.StudyProfile) -> models.Study:
        """Stage a study and its profile; flushes to obtain the study id."""
        self.session.add(study)
        self.session.flush()
        profile.study_id = study.id
        self.session.add(profile)
        return study

    def get(self, study_id: int) -> Optional[models.Study]:
        return self.session.get(models.Study, study_id)

    def get_for_update(self, study_id: int) -> Optional[models.Study]:
        """Fetch a study and lock its row until the transaction ends.

        Backends without row locks (SQLite) ignore the lock.
        """
        stmt = select(models.Study).where(models.Study.id == study_id).with_for_update()
        return self.session.exec(stmt).first()


class MembershipRepository:
    """Query helpers for `StudyMember` records."""
    def __init__(self, session: Session):
        self.session = session

    def add(self, member: models.StudyMember) -> models.StudyMember:
        self.session.add(member)
        return member

    def find(self, study_id: int, user_id: int) -> Optional[models.StudyMember]:
        """Return the membership of `user_id` in `study_id`, if any."""
        stmt = select(models.StudyMember).where(
            models.StudyMember.study_id == study_id,
            models.StudyMember.user_id == user_id
        )
        return self.session.exec(stmt).first()

    def count_for_study(self, study_id: int) -> int:
        stmt = select(func.count(models.StudyMember.id)).where(models.StudyMember.study_id == study_id)
        return self.session.exec(stmt).one()


class BookmarkRepository:
    """Add, find and remove `Bookmark` rows."""
    def __init__(self, session: Session):
        self.session = session

    def find(self, study_id: int, user_id: int) -> Optional[models.Bookmark]:
        stmt = select(models.Bookmark).where(
            models.Bookmark.study_id == study_id,
            models.Bookmark.user_id == user_id
        )
        return self.session.exec(stmt).first()

    def add(self, bookmark: models.Bookmark) -> models.Bookmark:
        self.session.add(bookmark)
        return bookmark

    def remove(self, bookmark: models.Bookmark) -> None:
        self.session.delete(bookmark)
