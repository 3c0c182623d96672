from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.auth.models import User
from app.core.deps import get_current_user
from app.notifications.service import list_for_user

router = APIRouter(prefix="/api/notificacoes", tags=["notificacoes"])


@router.get("")
def listar_notificacoes(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    notificacoes = list_for_user(db, user.id, limit=limit)
    return {
        "success": True,
        "notificacoes": [n.to_dict() for n in notificacoes],
        "naoLidas": sum(1 for n in notificacoes if not n.lida),
    }
