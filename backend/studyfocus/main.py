"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the StudyFocus backend.
Controllers are intentionally thin: they accept requests, delegate to
services, and return JSON responses.

Endpoints implemented:
- GET /health
- GET /studies
- POST /studies
- POST /studies/{study_id}/members
- PUT /studies/{study_id}/bookmark
- DELETE /studies/{study_id}/bookmark
"""

from typing import Optional

from fastapi import FastAPI, Depends, Query, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
import json
import logging
import time
import uuid
from .database import create_db_and_tables, get_session
from . import services, models
from .auth import get_current_user, get_optional_user
from .errors import InvalidParameter, InvalidRequest
from .models import Category
from .schemas import StudyCreateIn, StudyOut, StudyPage
from .search import StudySearchFilter
from .config import settings

app = FastAPI(title="StudyFocus API")
logger = logging.getLogger("studyfocus.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

# Wide-open CORS keeps local frontends working without extra config in dev.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


def _request_log_payload(request: Request, req_id: str, started: float, **extra) -> str:
    payload = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
        "client": request.client.host if request.client else "unknown",
    }
    payload.update(extra)
    return json.dumps(payload, ensure_ascii=True)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Tag every response with `X-Request-ID` and log requests under
    `settings.REQUEST_LOG_PREFIXES`."""
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    logged = request.url.path.startswith(settings.REQUEST_LOG_PREFIXES)
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        if logged:
            logger.exception("request_failed %s", _request_log_payload(request, req_id, started))
        raise
    response.headers["X-Request-ID"] = req_id
    if logged:
        logger.info(
            "request_done %s",
            _request_log_payload(request, req_id, started, status_code=response.status_code),
        )
    return response


@app.exception_handler(InvalidParameter)
@app.exception_handler(InvalidRequest)
async def domain_error_handler(request: Request, exc: ValueError):
    """Render service validation errors as 400 responses with an error code."""
    return JSONResponse(status_code=400, content={"detail": str(exc), "code": exc.code})


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get('/studies', response_model=StudyPage)
def search_studies(
    sort_type: Optional[str] = None,
    keyword: Optional[str] = None,
    category: Optional[Category] = None,
    province: Optional[str] = None,
    district: Optional[str] = None,
    page: int = 0,
    page_size: int = Query(default=settings.DEFAULT_PAGE_SIZE, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_session),
    viewer: Optional[models.User] = Depends(get_optional_user),
):
    """Search studies by keyword, category and address.

    `sort_type` is required (`LATEST` or `TRUST_SCORE_DESC`). When the
    request carries a bearer token, `viewer_has_bookmarked` reflects that
    user's bookmarks; anonymous callers always see `false`.
    """
    criteria = StudySearchFilter(
        sort_type=sort_type,
        keyword=keyword,
        category=category,
        province=province,
        district=district,
        viewer_user_id=viewer.id if viewer else None,
        page=page,
        page_size=page_size,
    )
    return services.StudyService(db).search(criteria)


@app.post('/studies', response_model=StudyOut)
def create_study(payload: StudyCreateIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Create a study led by the authenticated user."""
    study = services.StudyService(db).create_study(user.id, payload)
    return StudyOut(
        study_id=study.id,
        title=study.profile.title,
        category=study.profile.category,
        max_member_count=study.max_member_count,
    )


@app.post('/studies/{study_id}/members')
def join_study(study_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Join a study as a regular member."""
    member = services.StudyService(db).join_study(study_id, user.id)
    return {'study_id': member.study_id, 'user_id': member.user_id, 'role': member.role}


@app.put('/studies/{study_id}/bookmark')
def add_bookmark(study_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    services.StudyService(db).bookmark(study_id, user.id)
    return {'study_id': study_id, 'bookmarked': True}


@app.delete('/studies/{study_id}/bookmark')
def remove_bookmark(study_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    removed = services.StudyService(db).remove_bookmark(study_id, user.id)
    return {'study_id': study_id, 'bookmarked': False, 'removed': removed}
