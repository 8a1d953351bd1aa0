"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests.
"""

from pydantic import BaseModel
from typing import List, Optional

from .models import Category


class StudyCreateIn(BaseModel):
    """Payload for creating a study; the caller becomes its leader."""
    title: str
    bio: str = ''
    category: Category
    province: Optional[str] = None
    district: Optional[str] = None
    max_member_count: int


class StudyOut(BaseModel):
    """Identifier and headline fields of a created study."""
    study_id: int
    title: str
    category: Category
    max_member_count: int


class StudyListingRow(BaseModel):
    """One row of a study search result page."""
    study_id: int
    title: str
    max_member_count: int
    member_count: int
    bookmark_count: int
    bio: str
    category: Category
    leader_trust_score: int
    viewer_has_bookmarked: bool


class StudyPage(BaseModel):
    """Paginated search response envelope."""
    items: List[StudyListingRow]
    total: int
    page: int
    page_size: int
