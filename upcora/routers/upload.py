import math

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from sqlmodel import Session, func, select

from upcora import config
from upcora.auth import get_current_user
from upcora.db import delete_upload_cascade, get_session
from upcora.errors import UpcoraError
from upcora.middleware.rate_limit import upload_limit
from upcora.models import GameSession, Upload, User
from upcora.schemas import UrlUploadRequest
from upcora.services.extraction import (
    ALLOWED_MIME_TYPES,
    HTML,
    ExtractedContent,
    extract_from_url,
    validate_file,
)
from upcora.services.monitoring import EXTRACTION_REQUESTS

logger = structlog.get_logger()

router = APIRouter(prefix="/api/upload", tags=["upload"])

PREVIEW_CHARS = 500


def _preview(text: str) -> str:
    return text[:PREVIEW_CHARS] + "..."


def _store(session: Session, user: User, content: ExtractedContent, file_url: str) -> Upload:
    upload = Upload(
        user_id=user.id,
        file_name=content.file_name,
        file_url=file_url,
        file_type=content.file_type,
        original_text=content.text,
        extracted_text=content.text,
        word_count=content.word_count,
        page_count=content.pages,
    )
    session.add(upload)
    session.commit()
    session.refresh(upload)
    return upload


def _owned_upload(session: Session, upload_id: int, user: User) -> Upload:
    upload = session.get(Upload, upload_id)
    if upload is None or upload.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Upload not found")
    return upload


def _game_summaries(session: Session, upload_id: int) -> list:
    games = session.exec(
        select(GameSession).where(GameSession.upload_id == upload_id).order_by(GameSession.created_at.desc())
    ).all()
    return [g.summary() for g in games]


@router.post("/file", status_code=status.HTTP_201_CREATED)
@upload_limit()
def upload_file(
    request: Request,
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    # One byte past the limit is enough to reject without buffering the rest
    data = file.file.read(config.MAX_FILE_SIZE + 1)
    file_type = file.content_type or "application/octet-stream"
    metric_type = file_type if file_type in ALLOWED_MIME_TYPES else "other"
    try:
        validate_file(file.filename, file.content_type, len(data))
        content = request.app.state.extractor.extract(data, file.filename, file_type)
    except UpcoraError as e:
        EXTRACTION_REQUESTS.labels(file_type=metric_type, status="error").inc()
        logger.warning("file_upload_rejected", file_name=file.filename, file_type=file_type, error=e.message)
        raise
    EXTRACTION_REQUESTS.labels(file_type=metric_type, status="success").inc()

    upload = _store(session, user, content, f"memory://{content.file_name}")
    logger.info("file_uploaded", upload_id=upload.id, user_id=user.id, word_count=upload.word_count)
    return {
        "uploadId": upload.id,
        "fileName": upload.file_name,
        "fileType": upload.file_type,
        "extractedText": _preview(content.text),
        "metadata": content.metadata(),
        "message": "File uploaded and text extracted successfully",
    }


@router.post("/url", status_code=status.HTTP_201_CREATED)
@upload_limit()
def upload_url(
    request: Request,
    payload: UrlUploadRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    url = str(payload.url)
    try:
        content = extract_from_url(url)
    except UpcoraError as e:
        EXTRACTION_REQUESTS.labels(file_type=HTML, status="error").inc()
        logger.warning("url_upload_failed", url=url, error=e.message)
        raise
    EXTRACTION_REQUESTS.labels(file_type=HTML, status="success").inc()

    upload = _store(session, user, content, url)
    logger.info("url_uploaded", upload_id=upload.id, user_id=user.id, word_count=upload.word_count)
    return {
        "uploadId": upload.id,
        "fileName": upload.file_name,
        "fileType": upload.file_type,
        "extractedText": _preview(content.text),
        "metadata": content.metadata(),
        "message": "URL content extracted successfully",
    }


@router.get("/")
def list_uploads(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    uploads = session.exec(
        select(Upload)
        .where(Upload.user_id == user.id)
        .order_by(Upload.created_at.desc(), Upload.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    total = session.exec(select(func.count()).select_from(Upload).where(Upload.user_id == user.id)).one()
    return {
        "uploads": [{**u.public(), "gameSessions": _game_summaries(session, u.id)} for u in uploads],
        "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
    }


@router.get("/{upload_id}")
def get_upload(
    upload_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    upload = _owned_upload(session, upload_id, user)
    return {
        **upload.public(),
        "extractedText": upload.extracted_text,
        "gameSessions": _game_summaries(session, upload.id),
    }


@router.delete("/{upload_id}")
def delete_upload(
    upload_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    upload = _owned_upload(session, upload_id, user)
    delete_upload_cascade(session, upload)
    logger.info("upload_deleted", upload_id=upload_id, user_id=user.id)
    return {"message": "Upload deleted successfully"}
