"""Study discovery query engine.

`StudySearchEngine.search` turns a `StudySearchFilter` into two SQL
statements that share one predicate:

- the content query joins each study to its profile and to its leader
  (the single `LEADER` membership and that member's `User`), left-joins
  memberships and bookmarks for counting, groups per study, counts
  distinct member and bookmark ids, adds a correlated `EXISTS` for the
  viewer's own bookmark, orders by the requested sort type and applies
  offset/limit to the grouped rows;
- the count query counts distinct study ids over the same inner-join
  base and the same predicate, so `total` always describes the rows the
  content query pages through.

The engine only reads. Each call issues the two statements on the
session it was given; no snapshot is taken between them.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Union

from sqlalchemy import and_, distinct, exists, false, func, or_
from sqlalchemy.orm import aliased
from sqlmodel import Session, select

from .errors import InvalidParameter
from .models import Bookmark, Category, Study, StudyMember, StudyProfile, StudyRole, StudySortType, User
from .schemas import StudyListingRow, StudyPage

logger = logging.getLogger("studyfocus.search")

# LIMIT/OFFSET are bound as signed 64-bit integers.
_MAX_SQL_INT = 2 ** 63 - 1

LeaderMember = aliased(StudyMember, name="leader_member")
LeaderUser = aliased(User, name="leader_user")
ViewerBookmark = aliased(Bookmark, name="viewer_bookmark")

# Exactly one entry per StudySortType member.
_ORDERINGS = {
    StudySortType.LATEST: Study.created_at.desc(),
    StudySortType.TRUST_SCORE_DESC: LeaderUser.trust_score.desc(),
}


@dataclass(frozen=True)
class StudySearchFilter:
    """Search options. Blank strings count as absent."""
    sort_type: Optional[Union[StudySortType, str]] = None
    keyword: Optional[str] = None
    category: Optional[Category] = None
    province: Optional[str] = None
    district: Optional[str] = None
    viewer_user_id: Optional[int] = None
    page: int = 0
    page_size: int = 10


def _present(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def build_study_predicate(criteria: StudySearchFilter) -> List:
    """Return the WHERE clauses for `criteria`, to be ANDed together.

    Absent options contribute no clause, so an empty filter yields an
    empty list and matches every study.
    """
    clauses = []
    if _present(criteria.keyword):
        clauses.append(or_(
            StudyProfile.title.icontains(criteria.keyword, autoescape=True),
            StudyProfile.bio.icontains(criteria.keyword, autoescape=True),
        ))
    if criteria.category is not None:
        clauses.append(StudyProfile.category == criteria.category)
    if _present(criteria.province):
        clauses.append(StudyProfile.province == criteria.province)
    if _present(criteria.district):
        clauses.append(StudyProfile.district == criteria.district)
    return clauses


def resolve_sort_type(value) -> StudySortType:
    if value is None:
        raise InvalidParameter("sort_type is required")
    try:
        return StudySortType(value)
    except ValueError:
        raise InvalidParameter(f"unsupported sort_type: {value!r}") from None


def _validate_window(page: int, page_size: int) -> None:
    if page < 0:
        raise InvalidParameter("page must be >= 0")
    if page_size <= 0:
        raise InvalidParameter("page_size must be > 0")
    if page_size > _MAX_SQL_INT or page * page_size > _MAX_SQL_INT:
        raise InvalidParameter("page window is out of range")


def _join_listed_studies(stmt):
    """Inner-join study, profile and leader; a study without a leader drops out."""
    return (
        stmt.select_from(Study)
        .join(StudyProfile, StudyProfile.study_id == Study.id)
        .join(LeaderMember, and_(LeaderMember.study_id == Study.id, LeaderMember.role == StudyRole.LEADER))
        .join(LeaderUser, LeaderUser.id == LeaderMember.user_id)
    )


def _viewer_has_bookmarked(viewer_user_id: Optional[int]):
    if viewer_user_id is None:
        return false().label("viewer_has_bookmarked")
    return (
        exists()
        .where(ViewerBookmark.study_id == Study.id, ViewerBookmark.user_id == viewer_user_id)
        .correlate(Study)
        .label("viewer_has_bookmarked")
    )


class StudySearchEngine:
    """Filtered, ranked and paginated study listing."""
    def __init__(self, session: Session):
        self.session = session

    def search(self, criteria: StudySearchFilter) -> StudyPage:
        """Return one page of listing rows plus the total number of matches.

        Raises `InvalidParameter` before touching the database when the
        sort type is missing or unknown, or the page window is invalid.
        """
        sort_type = resolve_sort_type(criteria.sort_type)
        _validate_window(criteria.page, criteria.page_size)
        predicate = build_study_predicate(criteria)

        started = time.perf_counter()
        rows = self.session.exec(self._content_statement(criteria, predicate, sort_type)).all()
        total = self.session.exec(self._count_statement(predicate)).one()
        items = [StudyListingRow(**row._mapping) for row in rows]
        logger.info(
            "search_done %s",
            json.dumps(
                {
                    "keyword": criteria.keyword,
                    "category": criteria.category,
                    "province": criteria.province,
                    "district": criteria.district,
                    "sort_type": sort_type.value,
                    "page": criteria.page,
                    "page_size": criteria.page_size,
                    "total": total,
                    "returned": len(items),
                    "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
                },
                ensure_ascii=True,
                default=str,
            ),
        )
        return StudyPage(items=items, total=total, page=criteria.page, page_size=criteria.page_size)

    def _content_statement(self, criteria: StudySearchFilter, predicate: List, sort_type: StudySortType):
        stmt = select(
            Study.id.label("study_id"),
            StudyProfile.title.label("title"),
            Study.max_member_count.label("max_member_count"),
            func.count(distinct(StudyMember.id)).label("member_count"),
            func.count(distinct(Bookmark.id)).label("bookmark_count"),
            StudyProfile.bio.label("bio"),
            StudyProfile.category.label("category"),
            LeaderUser.trust_score.label("leader_trust_score"),
            _viewer_has_bookmarked(criteria.viewer_user_id),
        )
        stmt = (
            _join_listed_studies(stmt)
            .outerjoin(StudyMember, StudyMember.study_id == Study.id)
            .outerjoin(Bookmark, Bookmark.study_id == Study.id)
            .where(*predicate)
            # created_at is grouped so LATEST can order by it
            .group_by(
                Study.id,
                StudyProfile.title,
                Study.max_member_count,
                StudyProfile.bio,
                StudyProfile.category,
                LeaderUser.trust_score,
                Study.created_at,
            )
            .order_by(_ORDERINGS[sort_type], Study.id.asc())
            .offset(criteria.page * criteria.page_size)
            .limit(criteria.page_size)
        )
        return stmt

    def _count_statement(self, predicate: List):
        return _join_listed_studies(select(func.count(distinct(Study.id)))).where(*predicate)
