import logging
import math
import uuid

from sqlalchemy.orm import Session

from app.auth.models import User
from app.core.config import XP_QUIZ_MAXIMO
from app.core.errors import NotFoundError, ValidationError, UpstreamError
from app.ai import generator
from app.gamification import ledger
from app.gamification.models import SOURCE_QUIZ
from app.gamification.ranking import invalidate_ranking_cache
from app.quizzes.models import Quiz, UserQuizProgress
from app.quizzes.parser import parse_quiz_text

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def quiz_xp_for_score(score: float, max_xp: int) -> int:
    return round_half_up(score / 100 * max_xp)


def quiz_to_dict(quiz: Quiz, progress: UserQuizProgress | None = None) -> dict:
    return {
        "id": quiz.id,
        "titulo": quiz.titulo,
        "descricao": quiz.descricao,
        "tecnologia": quiz.tecnologia,
        "nivel": quiz.nivel,
        "xp": quiz.xp,
        "perguntas": quiz.perguntas or [],
        "completo": bool(progress and progress.completo),
        "tentativas": progress.tentativas if progress else 0,
        "melhorPontuacao": progress.melhor_pontuacao if progress else None,
    }


def get_progress(db: Session, user_id: str, quiz_id: int) -> UserQuizProgress | None:
    return db.query(UserQuizProgress).filter_by(user_id=user_id, quiz_id=quiz_id).first()


def list_quizzes(db: Session, user: User) -> list[dict]:
    quizzes = db.query(Quiz).filter(Quiz.disponivel.is_(True)).order_by(Quiz.id.desc()).all()
    progress = {
        p.quiz_id: p
        for p in db.query(UserQuizProgress).filter(UserQuizProgress.user_id == user.id).all()
    }
    return [quiz_to_dict(q, progress.get(q.id)) for q in quizzes]


# ======================================================
# GENERATE (reuse first, AI second)
# ======================================================
def find_reusable_quiz(db: Session, user: User, tecnologia: str, nivel: str) -> Quiz | None:
    """An available quiz on the same topic the user has not completed yet."""
    completed_ids = [
        row[0]
        for row in db.query(UserQuizProgress.quiz_id)
        .filter(UserQuizProgress.user_id == user.id, UserQuizProgress.completo.is_(True))
        .all()
    ]
    q = db.query(Quiz).filter(
        Quiz.disponivel.is_(True),
        Quiz.tecnologia == tecnologia,
        Quiz.nivel == nivel,
    )
    if completed_ids:
        q = q.filter(Quiz.id.notin_(completed_ids))
    return q.order_by(Quiz.id.asc()).first()


def generate_quiz(db: Session, user: User, tecnologia: str, nivel: str) -> tuple[Quiz, bool]:
    """Returns (quiz, reused)."""
    generator.validate_topic(tecnologia, nivel)

    existing = find_reusable_quiz(db, user, tecnologia, nivel)
    if existing:
        logger.info("[QUIZ] reusing quiz=%s for user=%s", existing.id, user.id)
        return existing, True

    text = generator.generate_quiz_text(tecnologia, nivel)
    perguntas, errors = parse_quiz_text(text)
    if errors:
        logger.warning("[QUIZ] parser skipped %s block(s): %s", len(errors), errors)
    if not perguntas:
        raise UpstreamError("Não foi possível interpretar o quiz gerado pela IA", details=errors)

    quiz = Quiz(
        titulo=f"Quiz de {tecnologia} ({nivel})",
        descricao=f"Quiz gerado automaticamente sobre {tecnologia}.",
        tecnologia=tecnologia,
        nivel=nivel,
        xp=XP_QUIZ_MAXIMO,
        perguntas=perguntas,
        disponivel=True,
        created_by=user.id,
    )
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    logger.info("[QUIZ] generated quiz=%s perguntas=%s", quiz.id, len(perguntas))
    return quiz, False


# ======================================================
# COMPLETE
# ======================================================
def complete_quiz(db: Session, user: User, quiz_id: int, pontuacao, respostas=None) -> dict:
    """
    Record one attempt and award XP proportional to the score.

    Every attempt is its own award (kind tentativa-N-<random>); a zero XP
    result writes nothing to the ledger.
    """
    if isinstance(pontuacao, bool) or not isinstance(pontuacao, (int, float)):
        raise ValidationError("Pontuação inválida")
    if math.isnan(pontuacao) or pontuacao < 0 or pontuacao > 100:
        raise ValidationError("Pontuação deve estar entre 0 e 100")

    quiz = db.get(Quiz, quiz_id)
    if not quiz:
        raise NotFoundError("Quiz não encontrado")

    progress = get_progress(db, user.id, quiz.id)
    if not progress:
        progress = UserQuizProgress(user_id=user.id, quiz_id=quiz.id, tentativas=0)
        db.add(progress)

    score = round_half_up(pontuacao)
    progress.tentativas = (progress.tentativas or 0) + 1
    progress.completo = True
    progress.pontuacao = score
    progress.melhor_pontuacao = max(progress.melhor_pontuacao or 0, score)
    if respostas is not None:
        progress.respostas = respostas

    xp_ganho = quiz_xp_for_score(pontuacao, quiz.xp or 0)
    if xp_ganho > 0:
        ledger.append(
            db,
            user.id,
            SOURCE_QUIZ,
            quiz.id,
            xp_ganho,
            description=f"Quiz: {quiz.titulo} ({score}%)",
            kind=f"tentativa-{progress.tentativas}-{uuid.uuid4().hex[:8]}",
        )

    db.commit()
    db.refresh(user)
    if xp_ganho > 0:
        invalidate_ranking_cache()

    logger.info("[QUIZ] user=%s quiz=%s attempt=%s score=%s xp=%s",
                user.id, quiz.id, progress.tentativas, score, xp_ganho)

    return {
        "xpGanho": xp_ganho,
        "pontuacao": score,
        "melhorPontuacao": progress.melhor_pontuacao,
        "tentativas": progress.tentativas,
        "xpTotal": user.xp,
        "level": user.level,
    }


# ======================================================
# ADMIN CRUD
# ======================================================
QUIZ_REQUIRED_FIELDS = ("titulo", "descricao", "tecnologia", "nivel")


def _clean_text(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} é obrigatório")
    return value.strip()


def _clean_quiz_xp(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError("xp deve ser um inteiro maior que zero")
    return value


def _clean_perguntas(value) -> list:
    if not isinstance(value, list) or not all(isinstance(p, dict) for p in value):
        raise ValidationError("perguntas deve ser uma lista de objetos")
    return value


def create_quiz(db: Session, admin: User, data: dict) -> Quiz:
    missing = [f for f in QUIZ_REQUIRED_FIELDS if not isinstance(data.get(f), str) or not data[f].strip()]
    if missing:
        raise ValidationError("Campos obrigatórios: " + ", ".join(QUIZ_REQUIRED_FIELDS), details=missing)

    quiz = Quiz(
        titulo=data["titulo"].strip(),
        descricao=data["descricao"].strip(),
        tecnologia=data["tecnologia"].strip(),
        nivel=data["nivel"].strip(),
        xp=_clean_quiz_xp(data["xp"]) if data.get("xp") is not None else XP_QUIZ_MAXIMO,
        perguntas=_clean_perguntas(data["perguntas"]) if data.get("perguntas") is not None else [],
        disponivel=True,
        created_by=admin.id,
    )
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    logger.info("[QUIZ] admin=%s created quiz=%s xp=%s", admin.id, quiz.id, quiz.xp)
    return quiz


def update_quiz(db: Session, admin: User, quiz_id: int, data: dict) -> Quiz:
    """Change only the fields present in `data`. Past awards are not repriced."""
    quiz = db.get(Quiz, quiz_id)
    if not quiz:
        raise NotFoundError("Quiz não encontrado")

    for field in QUIZ_REQUIRED_FIELDS:
        if data.get(field) is not None:
            setattr(quiz, field, _clean_text(data[field], field))
    if data.get("xp") is not None:
        quiz.xp = _clean_quiz_xp(data["xp"])
    if data.get("perguntas") is not None:
        quiz.perguntas = _clean_perguntas(data["perguntas"])
    if data.get("disponivel") is not None:
        if not isinstance(data["disponivel"], bool):
            raise ValidationError("disponivel deve ser booleano")
        quiz.disponivel = data["disponivel"]

    db.commit()
    db.refresh(quiz)
    logger.info("[QUIZ] admin=%s updated quiz=%s fields=%s", admin.id, quiz.id, sorted(data))
    return quiz


def delete_quiz(db: Session, admin: User, quiz_id: int) -> dict:
    """Remove a quiz and its progress rows. XP already earned stays in the ledger."""
    quiz = db.get(Quiz, quiz_id)
    if not quiz:
        raise NotFoundError("Quiz não encontrado")

    removed = (
        db.query(UserQuizProgress)
        .filter(UserQuizProgress.quiz_id == quiz.id)
        .delete(synchronize_session=False)
    )
    db.delete(quiz)
    db.commit()
    logger.info("[QUIZ] admin=%s deleted quiz=%s progress_rows=%s", admin.id, quiz_id, removed)
    return {"quiz_id": quiz_id, "progressoRemovido": removed}
