"""
Fire-and-forget notifications.

Called after the primary action has committed. A failure here is rolled
back and logged; it never fails the request that triggered it.
"""
import logging

from sqlalchemy.orm import Session

from app.auth.models import User, ROLE_ADMIN
from app.notifications.models import Notificacao

logger = logging.getLogger(__name__)


def notify(
    db: Session,
    user_id: str,
    titulo: str,
    mensagem: str,
    tipo: str = "info",
    action_url: str | None = None,
) -> bool:
    try:
        db.add(Notificacao(
            target_user_id=user_id,
            titulo=titulo,
            mensagem=mensagem,
            tipo=tipo,
            action_url=action_url,
        ))
        db.commit()
        return True
    except Exception:
        db.rollback()
        logger.exception("[NOTIFY] failed to notify user=%s titulo=%r", user_id, titulo)
        return False


def notify_admins(db: Session, titulo: str, mensagem: str, action_url: str | None = None) -> int:
    try:
        admin_ids = [row[0] for row in db.query(User.id).filter(User.role == ROLE_ADMIN).all()]
    except Exception:
        db.rollback()
        logger.exception("[NOTIFY] failed to load admins")
        return 0
    sent = 0
    for admin_id in admin_ids:
        if notify(db, admin_id, titulo, mensagem, action_url=action_url):
            sent += 1
    return sent


def list_for_user(db: Session, user_id: str, limit: int = 50) -> list[Notificacao]:
    return (
        db.query(Notificacao)
        .filter(Notificacao.target_user_id == user_id)
        .order_by(Notificacao.created_at.desc(), Notificacao.id.desc())
        .limit(limit)
        .all()
    )
