"""
Community badges.

A like is a vote on a question, credited to the question's author. The
"top member" is the author with the most likes, provided they have at least
TOP_MEMBER_MIN_CURTIDAS; ties go to the lowest user id.
"""
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.community.models import Pergunta, Voto
from app.core.config import TOP_MEMBER_MIN_CURTIDAS

logger = logging.getLogger(__name__)

BADGE_TOP_MEMBER = "top_member"


def likes_by_author(db: Session) -> dict[str, int]:
    rows = (
        db.query(Pergunta.autor_id, func.count(Voto.id))
        .join(Voto, Voto.pergunta_id == Pergunta.id)
        .group_by(Pergunta.autor_id)
        .all()
    )
    return {autor_id: int(total) for autor_id, total in rows}


def top_member(db: Session) -> dict:
    likes = likes_by_author(db)
    if not likes:
        return {"userId": None, "totalCurtidas": 0, "hasMinimum": False}

    user_id, total = min(likes.items(), key=lambda item: (-item[1], item[0]))
    has_minimum = total >= TOP_MEMBER_MIN_CURTIDAS
    return {
        "userId": user_id if has_minimum else None,
        "totalCurtidas": total,
        "hasMinimum": has_minimum,
    }


def user_badges(db: Session, user_id: str) -> list[dict]:
    badges = []
    top = top_member(db)
    if top["userId"] == user_id:
        badges.append({"type": BADGE_TOP_MEMBER, "metadata": {"totalCurtidas": top["totalCurtidas"]}})
    logger.debug("[BADGES] user=%s badges=%s", user_id, [b["type"] for b in badges])
    return badges
