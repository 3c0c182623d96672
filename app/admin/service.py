import logging
import uuid

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.auth.models import User
from app.core.errors import NotFoundError, ValidationError
from app.gamification import ledger
from app.gamification.models import SOURCE_BONIFICACAO, SOURCE_QUIZ, utcnow
from app.gamification.ranking import invalidate_ranking_cache
from app.notifications.service import notify
from app.quizzes.models import Quiz, UserQuizProgress
from app.quizzes.service import quiz_xp_for_score

logger = logging.getLogger(__name__)


def parse_emails(raw: str) -> list[str]:
    seen = []
    for part in (raw or "").split(","):
        email = part.strip().lower()
        if email and email not in seen:
            seen.append(email)
    return seen


def grant_bonus(db: Session, admin: User, emails_raw: str, motivo: str, amount) -> dict:
    """
    Give `amount` XP to every user found by email.

    Bonuses are additive: each grant gets its own ledger kind so the same
    admin can reward the same student more than once.
    """
    motivo = (motivo or "").strip()
    emails = parse_emails(emails_raw if isinstance(emails_raw, str) else "")
    if not emails:
        raise ValidationError("Informe ao menos um email.")
    if not motivo:
        raise ValidationError("Informe o motivo da bonificação.")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
        raise ValidationError("Informe uma quantidade de XP válida (número maior que zero).")

    found: list[User] = []
    not_found: list[str] = []
    for email in emails:
        user = db.query(User).filter(func.lower(User.email) == email).first()
        if user:
            found.append(user)
        else:
            not_found.append(email)

    grant_id = uuid.uuid4().hex[:12]
    for user in found:
        ledger.append(
            db,
            user.id,
            SOURCE_BONIFICACAO,
            admin.id,
            amount,
            description=motivo,
            kind=f"bonus-{grant_id}",
        )

    db.commit()
    if found:
        invalidate_ranking_cache()
    logger.info("[ADMIN] bonus %s xp by admin=%s rewarded=%s not_found=%s",
                amount, admin.id, len(found), not_found)

    for user in found:
        notify(
            db,
            user.id,
            "Você recebeu uma bonificação!",
            f"Você ganhou {amount} XP: {motivo}",
            tipo="sucesso",
        )

    return {"rewardedCount": len(found), "notFoundEmails": not_found}


def clean_monthly_xp(db: Session, email: str, mes=None, ano=None, dry_run: bool = False) -> dict:
    """Recompute one user's xp_mensal from the ledger entries of a month."""
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("Email é obrigatório")

    now = utcnow()
    mes = mes or now.month
    ano = ano or now.year
    if not isinstance(mes, int) or not 1 <= mes <= 12:
        raise ValidationError("Mês inválido (1-12)")
    if not isinstance(ano, int) or ano < 2000:
        raise ValidationError("Ano inválido")

    user = db.query(User).filter(func.lower(User.email) == email).first()
    if not user:
        raise NotFoundError("Usuário não encontrado")

    result = ledger.recalculate_monthly_xp(db, user, ano, mes, dry_run=dry_run)
    if not dry_run:
        db.commit()
        invalidate_ranking_cache()

    anterior, novo = result["xpMensalAnterior"], result["xpMensalNovo"]
    result.update({
        "user": {"id": user.id, "name": user.name, "email": user.email},
        "diferenca": novo - anterior,
        "totalEntradas": len(result["entradasContadas"]),
        "message": (
            f"XP mensal seria recalculado de {anterior} para {novo} (dry run)"
            if dry_run
            else f"XP mensal recalculado de {anterior} para {novo}"
        ),
    })
    return result


def repair_quiz_xp(db: Session, email: str | None = None, dry_run: bool = False) -> dict:
    """
    Top up quiz XP that was never paid.

    For each completed quiz the best score is worth quiz_xp_for_score(best,
    quiz.xp). When the user's quiz ledger rows for that quiz add up to less,
    the difference is written as a correction entry.
    """
    q = (
        db.query(UserQuizProgress, Quiz, User)
        .join(Quiz, Quiz.id == UserQuizProgress.quiz_id)
        .join(User, User.id == UserQuizProgress.user_id)
        .filter(UserQuizProgress.completo.is_(True), UserQuizProgress.melhor_pontuacao.isnot(None))
    )
    email = (email or "").strip().lower()
    if email:
        user = db.query(User).filter(func.lower(User.email) == email).first()
        if not user:
            raise NotFoundError("Usuário não encontrado")
        q = q.filter(UserQuizProgress.user_id == user.id)

    casos = []
    for progress, quiz, user in q.order_by(UserQuizProgress.id.asc()).all():
        esperado = quiz_xp_for_score(progress.melhor_pontuacao, quiz.xp or 0)
        ganho = ledger.sum_for_source(db, user.id, SOURCE_QUIZ, quiz.id)
        if ganho >= esperado:
            continue
        casos.append({
            "userId": user.id,
            "userName": user.name,
            "userEmail": user.email,
            "quizId": quiz.id,
            "quizTitulo": quiz.titulo,
            "melhorPontuacao": progress.melhor_pontuacao,
            "xpJaGanho": ganho,
            "xpEsperado": esperado,
            "xpFaltante": esperado - ganho,
        })

    aplicadas = []
    if not dry_run:
        for caso in casos:
            ledger.append(
                db,
                caso["userId"],
                SOURCE_QUIZ,
                caso["quizId"],
                caso["xpFaltante"],
                description=f"Correção de XP do quiz: {caso['quizTitulo']}",
                kind=f"correcao-{uuid.uuid4().hex[:12]}",
            )
            aplicadas.append({"userId": caso["userId"], "quizId": caso["quizId"], "xpAdicionado": caso["xpFaltante"]})
        db.commit()
        if aplicadas:
            invalidate_ranking_cache()

    logger.info("[ADMIN] repair quiz xp email=%s dry_run=%s affected=%s applied=%s",
                email or "*", dry_run, len(casos), len(aplicadas))

    if dry_run:
        message = f"{len(casos)} caso(s) encontrado(s) (dry run, nada foi alterado)"
    else:
        message = f"{len(aplicadas)} correção(ões) aplicada(s)"
    return {
        "dryRun": dry_run,
        "totalCasosAfetados": len(casos),
        "totalCorrecoesAplicadas": len(aplicadas),
        "casosAfetados": casos,
        "correcoesAplicadas": aplicadas,
        "message": message,
    }
