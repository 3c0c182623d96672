from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.auth.models import User
from app.core.deps import get_current_user
from app.quizzes import service
from app.quizzes.service import quiz_to_dict

router = APIRouter(prefix="/api/quiz", tags=["quiz"])


class GerarQuizBody(BaseModel):
    tecnologia: str
    nivel: str


class CompletarQuizBody(BaseModel):
    pontuacao: Any = None
    respostas: Any = None


# ======================================================
# LIST AVAILABLE QUIZZES
# ======================================================
@router.get("")
def list_quizzes(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"success": True, "quizzes": service.list_quizzes(db, user)}


# ======================================================
# GENERATE (or reuse) A QUIZ
# ======================================================
@router.post("/gerar")
def gerar_quiz(
    body: GerarQuizBody,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    quiz, reused = service.generate_quiz(db, user, body.tecnologia.strip(), body.nivel.strip())
    progress = service.get_progress(db, user.id, quiz.id)
    return {"success": True, "reutilizado": reused, "quiz": quiz_to_dict(quiz, progress)}


# ======================================================
# COMPLETE A QUIZ ATTEMPT
# ======================================================
@router.post("/{quiz_id}/completar")
def completar_quiz(
    quiz_id: int,
    body: CompletarQuizBody,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = service.complete_quiz(db, user, quiz_id, body.pontuacao, body.respostas)
    return {"success": True, **result}
