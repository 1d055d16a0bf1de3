
import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, func, select

from upcora.db import get_session
from upcora.models import GameSession, Score, Upload, User, utc_now
from upcora.auth import (
    create_access_token,
    create_refresh_token,
    get_current_user,
    get_password_hash,
    refresh_access_token,
    verify_password,
    verify_token,
)
from upcora.schemas import (
    LoginRequest,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    SignupRequest,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _token_response(user: User) -> dict:
    return {
        "user": user.public(),
        "token": create_access_token(str(user.id), role=user.role.value),
        "refreshToken": create_refresh_token(str(user.id)),
        "token_type": "bearer",
    }


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, session: Session = Depends(get_session)):
    existing = session.exec(select(User).where(User.email == payload.email)).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")
    user = User(email=payload.email, name=payload.name, hashed_password=get_password_hash(payload.password))
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("user_signed_up", user_id=user.id)
    return _token_response(user)


@router.post("/login")
def login(payload: LoginRequest, session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.email == payload.email)).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        logger.warning("login_failed", email=payload.email)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")
    user.last_active_at = utc_now()
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("user_logged_in", user_id=user.id)
    return _token_response(user)


@router.post("/refresh")
def refresh(payload: RefreshRequest, session: Session = Depends(get_session)):
    claims = verify_token(payload.refresh_token, "refresh")
    user = session.get(User, int(claims["sub"])) if claims else None
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    return {"token": refresh_access_token(payload.refresh_token, role=user.role.value), "token_type": "bearer"}


@router.get("/me")
def me(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    uploads = session.exec(select(func.count()).select_from(Upload).where(Upload.user_id == user.id)).one()
    games = session.exec(select(func.count()).select_from(GameSession).where(GameSession.user_id == user.id)).one()
    scores = session.exec(select(func.count()).select_from(Score).where(Score.user_id == user.id)).one()
    return {**user.public(), "counts": {"uploads": uploads, "gameSessions": games, "scores": scores}}


@router.put("/profile")
def update_profile(
    payload: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    if payload.email:
        email = payload.email.lower()
        taken = session.exec(select(User).where(User.email == email, User.id != user.id)).first()
        if taken:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
        user.email = email
    if payload.name is not None:
        user.name = payload.name
    session.add(user)
    session.commit()
    session.refresh(user)
    return user.public()


@router.put("/password")
def change_password(
    payload: PasswordChangeRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    if not verify_password(payload.current_password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    user.hashed_password = get_password_hash(payload.new_password)
    session.add(user)
    session.commit()
    logger.info("password_changed", user_id=user.id)
    return {"message": "Password updated successfully"}
