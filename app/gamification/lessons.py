"""
Self-reported XP (lessons).

The frontend posts here when a student finishes a lesson. Students may only
credit themselves, only for sources listed in SELF_SERVICE_SOURCES, and each
lesson pays once.
"""
import logging

from sqlalchemy.orm import Session

from app.auth.models import User
from app.core.config import XP_AULA_MAXIMO
from app.core.errors import PermissionDeniedError, ValidationError
from app.gamification import ledger
from app.gamification.models import SOURCE_AULA, XPLedgerEntry
from app.gamification.ranking import invalidate_ranking_cache

logger = logging.getLogger(__name__)

SELF_SERVICE_SOURCES = (SOURCE_AULA,)


def add_self_xp(
    db: Session,
    user: User,
    amount,
    source,
    source_id=None,
    description: str | None = None,
    target_user_id: str | None = None,
) -> dict:
    if target_user_id and target_user_id != user.id:
        logger.warning("[XP] user=%s tried to add xp for user=%s", user.id, target_user_id)
        raise PermissionDeniedError("Não autorizado")
    if amount is None or not source:
        raise ValidationError("amount e source são obrigatórios")
    if source not in SELF_SERVICE_SOURCES:
        raise ValidationError(f"Fonte de XP inválida. Use: {', '.join(SELF_SERVICE_SOURCES)}")
    if isinstance(amount, bool) or not isinstance(amount, int) or not 1 <= amount <= XP_AULA_MAXIMO:
        raise ValidationError(f"amount deve ser um inteiro entre 1 e {XP_AULA_MAXIMO}")
    source_id = str(source_id).strip() if source_id is not None else ""
    if not source_id:
        raise ValidationError("sourceId é obrigatório")

    entry = ledger.append(
        db,
        user.id,
        source,
        source_id,
        amount,
        description=(description or "").strip() or f"Aula concluída: {source_id}",
        kind="concluida",
    )
    duplicate = entry is None
    if duplicate:
        # Lesson already paid: report the original entry
        entry = (
            db.query(XPLedgerEntry)
            .filter_by(user_id=user.id, source=source, source_id=source_id, kind="concluida")
            .one()
        )
    data = entry.to_dict()
    db.commit()
    db.refresh(user)
    if not duplicate:
        invalidate_ranking_cache()

    logger.info("[XP] user=%s %s=%s amount=%s duplicate=%s", user.id, source, source_id, amount, duplicate)
    return {"data": data, "duplicado": duplicate, "xpTotal": user.xp, "level": user.level}
