import os
from datetime import datetime, timezone

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from sqlmodel import SQLModel, Session

from studyfocus.database import engine
from studyfocus.models import Bookmark, Category, Study, StudyMember, StudyProfile, StudyRole, User


@pytest.fixture(autouse=True)
def reset_db():
    """Give every test an empty in-memory schema."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def make_user(session):
    def _make(username, trust_score=0):
        user = User(username=username, trust_score=trust_score)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _make


@pytest.fixture
def make_study(session):
    """Insert a study directly, bypassing the service invariants.

    Passing `leader=None` produces a leaderless study.
    """
    def _make(title, leader=None, *, bio='', category=Category.CS, province=None, district=None,
              created_at=None, members=(), bookmarked_by=(), max_member_count=10):
        study = Study(max_member_count=max_member_count, created_at=created_at or datetime(2025, 1, 1, tzinfo=timezone.utc))
        session.add(study)
        session.flush()
        session.add(StudyProfile(
            study_id=study.id, title=title, bio=bio, category=category, province=province, district=district
        ))
        if leader is not None:
            session.add(StudyMember(study_id=study.id, user_id=leader.id, role=StudyRole.LEADER))
        for m in members:
            session.add(StudyMember(study_id=study.id, user_id=m.id, role=StudyRole.MEMBER))
        for u in bookmarked_by:
            session.add(Bookmark(study_id=study.id, user_id=u.id))
        session.commit()
        session.refresh(study)
        return study
    return _make


@pytest.fixture
def scenario(make_user, make_study):
    """Two studies: A (CS, 3 members, 2 bookmarks, leader 80, day 1) and
    B (MATH, 1 member, 0 bookmarks, leader 95, day 2)."""
    leader_a = make_user('leader_a', trust_score=80)
    leader_b = make_user('leader_b', trust_score=95)
    m1 = make_user('member1')
    m2 = make_user('member2')
    fan = make_user('fan')
    study_a = make_study(
        'Algorithms study', leader_a, bio='graphs and dynamic programming', category=Category.CS,
        created_at=datetime(2025, 3, 1, tzinfo=timezone.utc), members=[m1, m2], bookmarked_by=[m1, fan],
    )
    study_b = make_study(
        'Algebra basics', leader_b, bio='linear equations', category=Category.MATH,
        created_at=datetime(2025, 3, 2, tzinfo=timezone.utc),
    )
    return {
        'a': study_a.id, 'b': study_b.id,
        'leader_a': leader_a, 'leader_b': leader_b, 'm1': m1, 'm2': m2, 'fan': fan,
    }
