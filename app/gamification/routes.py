import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.auth.models import User
from app.core.deps import get_current_user, get_admin
from app.core.errors import NotFoundError, ValidationError
from app.gamification import ledger, ranking
from app.gamification.lessons import add_self_xp
from app.gamification.levels import level_info
from app.gamification.models import utcnow
from app.gamification.stats import user_stats

logger = logging.getLogger(__name__)

users_router = APIRouter(prefix="/api/users", tags=["users"])
ranking_router = APIRouter(prefix="/api/ranking", tags=["ranking"])
xp_router = APIRouter(prefix="/api/xp", tags=["xp"])


class SyncLevelBody(BaseModel):
    user_id: Optional[str] = None


class AddXpBody(BaseModel):
    amount: Any = None
    source: Any = None
    sourceId: Any = None
    description: Optional[str] = None
    userId: Optional[str] = None


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "avatar_url": user.avatar_url,
        "role": user.role,
        "access_level": user.access_level,
        "xp": user.xp or 0,
        "xp_mensal": user.xp_mensal or 0,
        "level": user.level,
    }


# ======================================================
# CURRENT USER
# ======================================================
@users_router.get("/me")
def get_me(user: User = Depends(get_current_user)):
    return {"success": True, "user": user_to_dict(user), "nivel": level_info(user.xp or 0)}


@users_router.get("/me/stats")
def get_my_stats(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"success": True, "stats": user_stats(db, user)}


@users_router.get("/me/xp-history")
def get_my_xp_history(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    entries = ledger.history_for_user(db, user.id, limit=100)
    return {"success": True, "history": [e.to_dict() for e in entries]}


# ======================================================
# ADMIN – CACHE REPAIR
# ======================================================
@users_router.post("/sync-level")
def sync_level(
    body: Optional[SyncLevelBody] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    """Fix cached level from xp for one user, or for everyone."""
    if body and body.user_id:
        target = db.get(User, body.user_id)
        if not target:
            raise NotFoundError("Usuário não encontrado")
        users = [target]
    else:
        users = db.query(User).all()

    updated = []
    for u in users:
        old = u.level
        if ledger.sync_user_level(u):
            updated.append({"id": u.id, "old_level": old, "new_level": u.level, "xp": u.xp})
    db.commit()
    if updated:
        ranking.invalidate_ranking_cache()

    logger.info("[LEVEL] sync-level by admin=%s checked=%s updated=%s", admin.id, len(users), len(updated))
    return {"success": True, "checked": len(users), "updated": updated}


@users_router.post("/sync-xp-mensal")
def sync_xp_mensal(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    """Recompute current-month xp_mensal for every user from the ledger."""
    now = utcnow()
    changed = []
    users = db.query(User).all()
    for u in users:
        result = ledger.recalculate_monthly_xp(db, u, now.year, now.month)
        if result["xpMensalAnterior"] != result["xpMensalNovo"]:
            changed.append({
                "id": u.id,
                "xpMensalAnterior": result["xpMensalAnterior"],
                "xpMensalNovo": result["xpMensalNovo"],
            })
    db.commit()
    ranking.invalidate_ranking_cache()

    logger.info("[RANKING] sync-xp-mensal by admin=%s users=%s changed=%s", admin.id, len(users), len(changed))
    return {"success": True, "checked": len(users), "updated": changed}


# ======================================================
# RANKING
# ======================================================
@ranking_router.get("")
def get_ranking(
    type: str = Query(ranking.RANKING_MENSAL),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if type not in ranking.RANKING_TYPES:
        raise ValidationError(f"Tipo de ranking inválido. Use: {', '.join(ranking.RANKING_TYPES)}")

    rows = ranking.get_ranking_cached(db, type, limit)
    return {
        "success": True,
        "type": type,
        "ranking": rows,
        "minhaPosicao": ranking.position_of(db, user, type),
    }


@ranking_router.get("/historico")
def get_historico(
    limit: int = Query(6, ge=1, le=24),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"success": True, "historico": ranking.get_champions(db, limit=limit)}


# ======================================================
# SELF-REPORTED XP (LESSONS)
# ======================================================
@xp_router.post("/add")
def add_xp(
    body: AddXpBody,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = add_self_xp(
        db,
        user,
        body.amount,
        body.source,
        source_id=body.sourceId,
        description=body.description,
        target_user_id=body.userId,
    )
    return {"success": True, **result}
