"""Business logic services used by HTTP controllers.

This module holds the service class that coordinates repositories and
the search engine. Services are intentionally thin: they perform
validation, execute domain logic and persist aggregates via
repositories. Validation failures raise `InvalidParameter` or
`InvalidRequest`, both `ValueError` subclasses.
"""

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import models, repositories
from .errors import InvalidParameter, InvalidRequest
from .schemas import StudyCreateIn, StudyPage
from .search import StudySearchEngine, StudySearchFilter


class StudyService:
    """Create and join studies, manage bookmarks and run study search."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.study_repo = repositories.StudyRepository(session)
        self.member_repo = repositories.MembershipRepository(session)
        self.bookmark_repo = repositories.BookmarkRepository(session)
        self.search_engine = StudySearchEngine(session)

    def create_study(self, leader_id: int, payload: StudyCreateIn) -> models.Study:
        """Create a study, its profile and its single `LEADER` membership.

        All three rows are committed together so no reader ever sees a
        study without a leader.
        """
        if not self.user_repo.get(leader_id):
            raise InvalidParameter(f"user not found: {leader_id}")
        if not payload.title or not payload.title.strip():
            raise InvalidParameter("title must not be blank")
        if payload.max_member_count < 1:
            raise InvalidParameter("max_member_count must be >= 1")
        study = models.Study(max_member_count=payload.max_member_count)
        profile = models.StudyProfile(
            title=payload.title.strip(),
            bio=payload.bio,
            category=payload.category,
            province=payload.province,
            district=payload.district
        )
        self.study_repo.add(study, profile)
        self.member_repo.add(models.StudyMember(study_id=study.id, user_id=leader_id, role=models.StudyRole.LEADER))
        self.session.commit()
        self.session.refresh(study)
        return study

    def join_study(self, study_id: int, user_id: int) -> models.StudyMember:
        """Add `user_id` to the study as a `MEMBER`.

        Raises `InvalidRequest` when the user already belongs to the
        study or the study has reached `max_member_count`. The study row
        is locked for the duration of the join, and the member count is
        checked again after the insert is flushed, so concurrent joins
        cannot overfill a study.
        """
        study = self.study_repo.get_for_update(study_id)
        if not study:
            raise InvalidParameter(f"study not found: {study_id}")
        if not self.user_repo.get(user_id):
            raise InvalidParameter(f"user not found: {user_id}")
        if self.member_repo.find(study_id, user_id):
            raise InvalidRequest("already a member of this study")
        max_member_count = study.max_member_count
        if self.member_repo.count_for_study(study_id) >= max_member_count:
            raise InvalidRequest("study is full")
        member = self.member_repo.add(models.StudyMember(study_id=study_id, user_id=user_id, role=models.StudyRole.MEMBER))
        try:
            self.session.flush()
        except IntegrityError:
            self.session.rollback()
            raise InvalidRequest("already a member of this study") from None
        if self.member_repo.count_for_study(study_id) > max_member_count:
            self.session.rollback()
            raise InvalidRequest("study is full")
        self.session.commit()
        self.session.refresh(member)
        return member

    def bookmark(self, study_id: int, user_id: int) -> models.Bookmark:
        """Bookmark a study for a user; returns the existing row if present.

        A bookmark committed by a concurrent request between the lookup
        and the insert is returned instead of failing.
        """
        self._require_study(study_id)
        existing = self.bookmark_repo.find(study_id, user_id)
        if existing:
            return existing
        bookmark = self.bookmark_repo.add(models.Bookmark(study_id=study_id, user_id=user_id))
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            existing = self.bookmark_repo.find(study_id, user_id)
            if existing is None:
                raise
            return existing
        self.session.refresh(bookmark)
        return bookmark

    def remove_bookmark(self, study_id: int, user_id: int) -> bool:
        """Remove a bookmark. Returns False when there was none."""
        self._require_study(study_id)
        existing = self.bookmark_repo.find(study_id, user_id)
        if not existing:
            return False
        self.bookmark_repo.remove(existing)
        self.session.commit()
        return True

    def search(self, criteria: StudySearchFilter) -> StudyPage:
        """Run a study search; see `StudySearchEngine.search`."""
        return self.search_engine.search(criteria)

    def _require_study(self, study_id: int) -> models.Study:
        study = self.study_repo.get(study_id)
        if not study:
            raise InvalidParameter(f"study not found: {study_id}")
        return study
