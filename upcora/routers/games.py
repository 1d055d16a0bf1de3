import json
import math
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlmodel import Session, func, select

from upcora.auth import get_current_user, get_optional_user
from upcora.db import get_session
from upcora.middleware.rate_limit import generation_limit
from upcora.models import GameSession, Score, Upload, User, utc_now
from upcora.schemas import GradeRequest, ProcessRequest, ScoreSubmission
from upcora.services.monitoring import GAME_GENERATION_REQUESTS, SCORE_SUBMISSIONS
from upcora.services.scoring import (
    compute_rewards,
    level_for_xp,
    merge_badges,
    round_half_up,
    score_answers,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/games", tags=["games"])

GAME_TYPE = "INTERACTIVE"


def _get_game(session: Session, game_id: int) -> GameSession:
    game = session.get(GameSession, game_id)
    if game is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    return game


def _last_score(session: Session, game_id: int) -> Optional[dict]:
    score = session.exec(
        select(Score)
        .where(Score.game_session_id == game_id)
        .order_by(Score.created_at.desc(), Score.id.desc())
    ).first()
    return score.public() if score else None


@router.post("/process")
@generation_limit()
def process_upload(
    request: Request,
    response: Response,
    payload: ProcessRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    upload = session.get(Upload, payload.upload_id)
    if upload is None or upload.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Upload not found")
    if not upload.extracted_text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No text content available for processing")

    existing = session.exec(
        select(GameSession).where(GameSession.upload_id == upload.id, GameSession.game_type == GAME_TYPE)
    ).first()
    if existing:
        return {"gameSessionId": existing.id, "message": "Game already generated for this upload"}

    try:
        game_data = request.app.state.generator.generate(upload.extracted_text)
    except Exception:
        GAME_GENERATION_REQUESTS.labels(status="error").inc()
        raise
    GAME_GENERATION_REQUESTS.labels(status="success").inc()

    game = GameSession(
        upload_id=upload.id,
        user_id=user.id,
        title=game_data["title"],
        game_type=GAME_TYPE,
        game_data=json.dumps(game_data),
    )
    upload.is_processed = True
    upload.processed_at = utc_now()
    session.add(game)
    session.add(upload)
    session.commit()
    session.refresh(game)
    logger.info("game_session_created", game_id=game.id, upload_id=upload.id, user_id=user.id)

    response.status_code = status.HTTP_201_CREATED
    return {"gameSessionId": game.id, "title": game.title, "message": "Game generated successfully"}


@router.get("/")
def list_games(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    games = session.exec(
        select(GameSession)
        .where(GameSession.user_id == user.id)
        .order_by(GameSession.created_at.desc(), GameSession.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    total = session.exec(select(func.count()).select_from(GameSession).where(GameSession.user_id == user.id)).one()

    items = []
    for game in games:
        upload = session.get(Upload, game.upload_id)
        items.append({
            **game.summary(),
            "upload": {"fileName": upload.file_name, "fileType": upload.file_type} if upload else None,
            "lastScore": _last_score(session, game.id),
        })
    return {
        "games": items,
        "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
    }


@router.get("/{game_id}")
def get_game(game_id: int, session: Session = Depends(get_session)):
    game = _get_game(session, game_id)
    upload = session.get(Upload, game.upload_id)
    return {
        "gameId": game.id,
        "title": game.title,
        "gameType": game.game_type,
        "gameData": game.data(),
        "isCompleted": game.is_completed,
        "upload": {
            "fileName": upload.file_name,
            "fileType": upload.file_type,
            "createdAt": upload.created_at.isoformat(),
        } if upload else None,
        "lastScore": _last_score(session, game.id),
        "createdAt": game.created_at.isoformat(),
    }


@router.post("/{game_id}/grade")
def grade_game(game_id: int, payload: GradeRequest, session: Session = Depends(get_session)):
    """Score raw quiz answers against the stored questions without recording anything"""
    game = _get_game(session, game_id)
    questions = game.data().get("quiz", {}).get("questions", [])
    result = score_answers(questions, payload.answers)
    percentage = (result.score / result.max_score) * 100 if result.max_score else 0
    return {**result.to_dict(), "percentage": round_half_up(percentage)}


@router.post("/{game_id}/score", status_code=status.HTTP_201_CREATED)
def submit_score(
    game_id: int,
    payload: ScoreSubmission,
    user: Optional[User] = Depends(get_optional_user),
    session: Session = Depends(get_session),
):
    game = _get_game(session, game_id)
    rewards = compute_rewards(payload.score, payload.max_score, payload.time_spent)

    score = Score(
        game_session_id=game.id,
        user_id=user.id if user else None,
        score=payload.score,
        max_score=payload.max_score,
        time_spent=payload.time_spent,
        correct_answers=payload.correct_answers,
        total_questions=payload.total_questions,
        xp_earned=rewards.xp_earned,
        badges=",".join(rewards.badges),
    )
    session.add(score)

    if user is not None:
        user.xp = (user.xp or 0) + rewards.xp_earned
        user.level = level_for_xp(user.xp)
        user.badges = merge_badges(user.badges, rewards.badges)
        user.last_active_at = utc_now()
        session.add(user)

    game.is_completed = True
    game.completed_at = utc_now()
    session.add(game)
    session.commit()
    session.refresh(score)

    SCORE_SUBMISSIONS.labels(authenticated=str(user is not None).lower()).inc()
    logger.info(
        "score_submitted",
        game_id=game.id,
        user_id=user.id if user else None,
        xp_earned=rewards.xp_earned,
        badges=rewards.badges,
    )
    return {
        "scoreId": score.id,
        "xpEarned": rewards.xp_earned,
        "badges": rewards.badges,
        "percentage": round_half_up(rewards.percentage),
        "message": "Score submitted successfully",
    }
