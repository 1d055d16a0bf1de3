import math
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlmodel import Session, col, func, or_, select

from upcora.auth import require_admin
from upcora.config import ADMIN_STATS_CACHE_SECONDS
from upcora.db import delete_upload_cascade, get_session
from upcora.middleware.rate_limit import admin_limit
from upcora.models import AuditLog, GameSession, Score, Upload, User, UserRole
from upcora.schemas import RoleUpdateRequest
from upcora.services.cache import cache
from upcora.services.monitoring import health_checker
from upcora.services.scoring import round_half_up

logger = structlog.get_logger()

router = APIRouter(prefix="/api/admin", tags=["admin"])

STATS_CACHE_KEY = "admin:stats"


def _count(session: Session, model, *where) -> int:
    query = select(func.count()).select_from(model)
    if where:
        query = query.where(*where)
    return session.exec(query).one()


def _audit(session: Session, actor: User, action: str, resource: str, resource_id, details: dict) -> None:
    session.add(AuditLog(
        user_id=actor.id,
        action=action,
        resource=resource,
        resource_id=str(resource_id),
        details=details,
    ))


@router.get("/stats")
@admin_limit()
def get_stats(
    request: Request,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    cached = cache.get(STATS_CACHE_KEY)
    if cached is not None:
        return cached

    average = session.exec(select(func.avg(Score.score))).one()
    recent = session.exec(select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(10)).all()
    stats = {
        "totalUsers": _count(session, User),
        "totalUploads": _count(session, Upload),
        "totalGames": _count(session, GameSession),
        "totalScores": _count(session, Score),
        "averageScore": round_half_up(average or 0),
        "recentActivity": [
            {
                "id": entry.id,
                "action": entry.action,
                "resource": entry.resource,
                "userId": entry.user_id,
                "createdAt": entry.created_at.isoformat(),
            }
            for entry in recent
        ],
    }
    cache.set(STATS_CACHE_KEY, stats, expire=ADMIN_STATS_CACHE_SECONDS)
    return stats


@router.get("/users")
@admin_limit()
def list_users(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(or_(col(User.email).ilike(pattern), col(User.name).ilike(pattern)))

    query = select(User)
    if filters:
        query = query.where(*filters)
    users = session.exec(
        query
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    total = _count(session, User, *filters)
    return {
        "users": [
            {
                **u.public(),
                "counts": {
                    "uploads": _count(session, Upload, Upload.user_id == u.id),
                    "scores": _count(session, Score, Score.user_id == u.id),
                },
            }
            for u in users
        ],
        "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
    }


@router.get("/uploads")
@admin_limit()
def list_uploads(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    uploads = session.exec(
        select(Upload)
        .order_by(Upload.created_at.desc(), Upload.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    total = _count(session, Upload)

    items = []
    for upload in uploads:
        owner = session.get(User, upload.user_id)
        items.append({
            **upload.public(),
            "user": {"id": owner.id, "email": owner.email, "name": owner.name} if owner else None,
            "gameSessions": _count(session, GameSession, GameSession.upload_id == upload.id),
        })
    return {
        "uploads": items,
        "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
    }


@router.put("/users/{user_id}/role")
def update_user_role(
    user_id: int,
    payload: RoleUpdateRequest,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    previous = user.role
    user.role = payload.role
    session.add(user)
    _audit(session, admin, "UPDATE_USER_ROLE", "User", user.id, {"from": UserRole(previous).value, "to": payload.role.value})
    session.commit()
    session.refresh(user)
    cache.delete(STATS_CACHE_KEY)

    logger.info("user_role_updated", admin_id=admin.id, user_id=user.id, role=user.role)
    return user.public()


@router.delete("/uploads/{upload_id}")
def delete_upload(
    upload_id: int,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    upload = session.get(Upload, upload_id)
    if upload is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Upload not found")

    _audit(session, admin, "DELETE_UPLOAD", "Upload", upload.id, {"fileName": upload.file_name, "ownerId": upload.user_id})
    delete_upload_cascade(session, upload)
    cache.delete(STATS_CACHE_KEY)

    logger.info("upload_deleted_by_admin", admin_id=admin.id, upload_id=upload_id)
    return {"message": "Upload deleted successfully"}


@router.get("/health")
def admin_health(admin: User = Depends(require_admin)):
    database = health_checker.check_database()
    return {
        "status": database["status"],
        "database": database["status"] == "healthy",
        "cache": health_checker.check_cache(),
        "system": health_checker.get_system_metrics(),
        "application": health_checker.get_application_metrics(),
    }
