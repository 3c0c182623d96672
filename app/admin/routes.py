from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.auth.models import User
from app.core.deps import get_admin
from app.admin import service
from app.challenges import service as desafios
from app.forms import service as formularios
from app.quizzes import service as quizzes
from app.quizzes.service import quiz_to_dict

router = APIRouter(prefix="/api/admin", tags=["admin"])


class ReviewBody(BaseModel):
    status: str = ""
    admin_notes: Optional[str] = None


class BonificacaoBody(BaseModel):
    emails: Any = ""
    motivo: str = ""
    amount: Any = None


class LimparXpMensalBody(BaseModel):
    email: str = ""
    mes: Optional[int] = None
    ano: Optional[int] = None
    dryRun: bool = False


class CorrigirXpQuizBody(BaseModel):
    email: Optional[str] = None
    dryRun: bool = False


class QuizBody(BaseModel):
    titulo: Any = None
    descricao: Any = None
    tecnologia: Any = None
    nivel: Any = None
    xp: Any = None
    perguntas: Any = None
    disponivel: Any = None


class FormularioBody(BaseModel):
    titulo: Any = None
    descricao: Optional[str] = None
    perguntas: Any = None
    ativo: Any = None


# ======================================================
# ADMIN – CHALLENGE SUBMISSIONS
# ======================================================
@router.get("/submissions")
def listar_submissions(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    return {"success": True, "submissions": desafios.list_submissions(db, status)}


@router.put("/submissions/{submission_id}")
def revisar_submission(
    submission_id: int,
    body: ReviewBody,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    submission = desafios.review_submission(db, admin, submission_id, body.status, body.admin_notes)
    return {"success": True, "submission": submission.to_dict()}


# ======================================================
# ADMIN – XP TOOLS
# ======================================================
@router.post("/bonificacao")
def bonificacao(
    body: BonificacaoBody,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    amount = body.amount
    if isinstance(amount, str) and amount.strip().isdigit():
        amount = int(amount.strip())
    elif isinstance(amount, float) and amount.is_integer():
        amount = int(amount)
    return {"success": True, **service.grant_bonus(db, admin, body.emails, body.motivo, amount)}


@router.post("/limpar-xp-mensal")
def limpar_xp_mensal(
    body: LimparXpMensalBody,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    return {"success": True, **service.clean_monthly_xp(db, body.email, body.mes, body.ano, body.dryRun)}


@router.post("/corrigir-xp-quiz")
def corrigir_xp_quiz(
    body: CorrigirXpQuizBody,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    return {"success": True, **service.repair_quiz_xp(db, body.email, body.dryRun)}


# ======================================================
# ADMIN – QUIZZES
# ======================================================
def _admin_quiz_dict(quiz) -> dict:
    return {**quiz_to_dict(quiz), "disponivel": bool(quiz.disponivel)}


@router.post("/quizzes")
def criar_quiz(
    body: QuizBody,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    quiz = quizzes.create_quiz(db, admin, body.model_dump(exclude_unset=True))
    return {"success": True, "quiz": _admin_quiz_dict(quiz)}


@router.put("/quizzes/{quiz_id}")
def atualizar_quiz(
    quiz_id: int,
    body: QuizBody,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    quiz = quizzes.update_quiz(db, admin, quiz_id, body.model_dump(exclude_unset=True))
    return {"success": True, "quiz": _admin_quiz_dict(quiz)}


@router.delete("/quizzes/{quiz_id}")
def deletar_quiz(
    quiz_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    return {"success": True, **quizzes.delete_quiz(db, admin, quiz_id)}


# ======================================================
# ADMIN – FORMS
# ======================================================
@router.post("/formularios")
def criar_formulario(
    body: FormularioBody,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    formulario = formularios.create_form(db, admin, body.model_dump(exclude_unset=True))
    return {"success": True, "formulario": formulario.to_dict()}


@router.put("/formularios/{formulario_id}")
def atualizar_formulario(
    formulario_id: int,
    body: FormularioBody,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    formulario = formularios.update_form(db, admin, formulario_id, body.model_dump(exclude_unset=True))
    return {"success": True, "formulario": formulario.to_dict()}


@router.delete("/formularios/{formulario_id}")
def deletar_formulario(
    formulario_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    return {"success": True, **formularios.delete_form(db, admin, formulario_id)}
