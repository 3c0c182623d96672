from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.auth.models import User
from app.core.deps import get_current_user
from app.forms import service

router = APIRouter(prefix="/api/formularios", tags=["formularios"])


class RespostaFormularioBody(BaseModel):
    respostas: Any = None


@router.get("")
def listar_formularios(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"success": True, "formularios": [f.to_dict() for f in service.list_forms(db, user)]}


@router.get("/{formulario_id}")
def detalhe_formulario(
    formulario_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    formulario, minha = service.get_form(db, user, formulario_id)
    return {
        "success": True,
        "formulario": formulario.to_dict(),
        "minhaResposta": minha.to_dict() if minha else None,
    }


@router.post("/{formulario_id}/resposta")
def responder_formulario(
    formulario_id: int,
    body: RespostaFormularioBody,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    resposta = service.submit_form(db, user, formulario_id, body.respostas)
    return {"success": True, "resposta": resposta.to_dict()}
