from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.auth.models import User
from app.core.deps import get_current_user
from app.community import badges, service

router = APIRouter(prefix="/api/comunidade", tags=["comunidade"])


class PerguntaBody(BaseModel):
    titulo: str = ""
    conteudo: str = ""
    categoria: Optional[str] = None
    tags: list[str] = []


class RespostaBody(BaseModel):
    conteudo: str = ""
    resposta_pai_id: Optional[int] = None


# ======================================================
# QUESTIONS
# ======================================================
@router.get("/perguntas")
def listar_perguntas(
    categoria: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    autor_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    perguntas = service.list_questions(db, user, categoria=categoria, search=search, autor_id=autor_id)
    return {"success": True, "perguntas": perguntas}


@router.post("/perguntas")
def criar_pergunta(
    body: PerguntaBody,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    pergunta = service.create_question(db, user, body.titulo, body.conteudo, body.categoria, body.tags)
    return {"success": True, "pergunta": service.pergunta_to_dict(pergunta, user)}


@router.get("/perguntas/{pergunta_id}")
def detalhe_pergunta(
    pergunta_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"success": True, "pergunta": service.get_question_detail(db, user, pergunta_id)}


@router.post("/perguntas/{pergunta_id}/visualizar")
def visualizar_pergunta(
    pergunta_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"success": True, "visualizacoes": service.register_view(db, pergunta_id)}


@router.post("/perguntas/{pergunta_id}/responder")
def responder_pergunta(
    pergunta_id: int,
    body: RespostaBody,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    resposta = service.create_answer(db, user, pergunta_id, body.conteudo, body.resposta_pai_id)
    return {"success": True, "resposta": service.resposta_to_dict(resposta, user)}


@router.post("/perguntas/{pergunta_id}/votar")
def votar_pergunta(
    pergunta_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"success": True, **service.toggle_question_vote(db, user, pergunta_id)}


@router.delete("/perguntas/{pergunta_id}/delete")
def deletar_pergunta(
    pergunta_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = service.delete_question(db, user, pergunta_id)
    return {"success": True, "message": "Pergunta deletada com sucesso", **result}


# ======================================================
# ANSWERS
# ======================================================
@router.post("/respostas/{resposta_id}/aceitar")
def aceitar_resposta(
    resposta_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"success": True, **service.accept_answer(db, user, resposta_id)}


@router.post("/respostas/{resposta_id}/votar")
def votar_resposta(
    resposta_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"success": True, **service.toggle_answer_vote(db, user, resposta_id)}


@router.delete("/respostas/{resposta_id}/delete")
def deletar_resposta(
    resposta_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = service.delete_answer(db, user, resposta_id)
    return {"success": True, "message": "Resposta deletada com sucesso", **result}


# ======================================================
# BADGES
# ======================================================
@router.get("/badges")
def listar_badges(
    userId: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    target = userId or user.id
    return {"success": True, "userId": target, "badges": badges.user_badges(db, target)}


@router.get("/badges/top-member")
def top_member(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"success": True, **badges.top_member(db)}
