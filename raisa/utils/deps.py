from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from raisa.database.connection import SessionLocal
from raisa.database.repositories import Store
from raisa.schemas.analyst import ActingUser
from raisa.services.notifications import DatabaseNotifier
from raisa.tasks.tasks import enqueue_ai_review


def get_db():
    """Cria e fecha sessão SQLAlchemy automaticamente."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> Store:
    return Store(db)


def get_notifier() -> DatabaseNotifier:
    return DatabaseNotifier(SessionLocal)


def get_enqueuer():
    return enqueue_ai_review


def get_acting_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
) -> ActingUser:
    """
    Usuário que executa a ação, lido dos headers X-User-Id / X-User-Name.
    Sem os headers a ação é registrada como "Sistema".
    """
    if x_user_id is None:
        return ActingUser(nome=x_user_name or "Sistema")
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="X-User-Id deve ser numérico")
    return ActingUser(id=user_id, nome=x_user_name or f"Usuário {user_id}")
