from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session, select

from upcora.config import DATABASE_URL
from upcora.models import AuditLog, GameSession, Score, Upload, User  # registers tables on SQLModel.metadata

engine_kwargs = {}
if DATABASE_URL.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every checkout sees an empty database
        engine_kwargs["poolclass"] = StaticPool
engine = create_engine(DATABASE_URL, echo=False, **engine_kwargs)


def init_db() -> None:
    """Create all tables if they don't exist."""
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session


def delete_upload_cascade(session: Session, upload: Upload) -> None:
    """Remove an upload with its game sessions and their scores, then commit."""
    sessions = session.exec(select(GameSession).where(GameSession.upload_id == upload.id)).all()
    for game in sessions:
        for score in session.exec(select(Score).where(Score.game_session_id == game.id)).all():
            session.delete(score)
        session.delete(game)
    session.flush()
    session.delete(upload)
    session.commit()
