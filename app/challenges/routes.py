from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.auth.models import User
from app.core.deps import get_current_user
from app.challenges import service

router = APIRouter(prefix="/api/desafios", tags=["desafios"])


class GerarDesafioBody(BaseModel):
    tecnologia: str
    nivel: str


class SubmeterDesafioBody(BaseModel):
    github_url: str = ""


# ======================================================
# GENERATE + ASSIGN A CHALLENGE
# ======================================================
@router.post("/gerar")
def gerar_desafio(
    body: GerarDesafioBody,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    desafio = service.generate_challenge(db, user, body.tecnologia.strip(), body.nivel.strip())
    return {"success": True, "desafio": desafio.to_dict()}


# ======================================================
# MY CHALLENGES
# ======================================================
@router.get("/meus")
def meus_desafios(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"success": True, "desafios": service.list_user_challenges(db, user)}


# ======================================================
# SUBMIT GITHUB LINK
# ======================================================
@router.post("/{desafio_id}/submeter")
def submeter_desafio(
    desafio_id: int,
    body: SubmeterDesafioBody,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    submission = service.submit_challenge(db, user, desafio_id, body.github_url)
    return {
        "success": True,
        "message": "Desafio enviado para revisão!",
        "submission": submission.to_dict(),
    }


# ======================================================
# ABANDON
# ======================================================
@router.post("/{desafio_id}/desistir")
def desistir_desafio(
    desafio_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"success": True, **service.abandon_challenge(db, user, desafio_id)}
