"""CLI script to seed the backend DB with demo users, studies and bookmarks.
Usage: python scripts/seed_demo.py [--studies N]
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `studyfocus` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from studyfocus.database import engine, create_db_and_tables
from studyfocus import models, repositories, services
from studyfocus.schemas import StudyCreateIn

DEMO_STUDIES = [
    ("Algorithms weekly", "Solve two algorithm problems a week", models.Category.CS, "Seoul", "Gangnam"),
    ("Linear algebra reading group", "Chapter-by-chapter algebra notes", models.Category.MATH, "Seoul", "Mapo"),
    ("Morning English", "Speaking practice before work", models.Category.LANGUAGE, "Busan", "Haeundae"),
    ("Cloud certification prep", "Mock exams and study notes", models.Category.CERTIFICATION, "Seoul", "Gangnam"),
    ("Interview practice", "Mock interviews and resume review", models.Category.CAREER, "Incheon", "Yeonsu"),
]


def _get_or_create_user(session: Session, username: str, trust_score: int) -> models.User:
    repo = repositories.UserRepository(session)
    existing = repo.get_by_username(username)
    if existing:
        return existing
    return repo.create(models.User(username=username, trust_score=trust_score))


def main(count: int = len(DEMO_STUDIES)):
    """Create demo users and `count` studies with members and bookmarks.

    Each study is led by its own demo user; every other demo user joins
    and bookmarks it so listing counts are non-trivial.
    """
    create_db_and_tables()
    with Session(engine) as session:
        svc = services.StudyService(session)
        users = [_get_or_create_user(session, f"demo{i}", 50 + 10 * i) for i in range(len(DEMO_STUDIES))]
        for i, (title, bio, category, province, district) in enumerate(DEMO_STUDIES[:count]):
            leader = users[i]
            study = svc.create_study(leader.id, StudyCreateIn(
                title=title, bio=bio, category=category, province=province, district=district, max_member_count=10
            ))
            for other in users:
                if other.id == leader.id:
                    continue
                if (other.id + i) % 2 == 0:
                    svc.join_study(study.id, other.id)
                if (other.id + i) % 3 == 0:
                    svc.bookmark(study.id, other.id)
            print(f"Created study {study.id}: {title}")
    print("Seeding complete.")


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Seed demo studies')
    parser.add_argument('--studies', type=int, default=len(DEMO_STUDIES), help='number of demo studies to create')
    args = parser.parse_args()
    main(args.studies)
