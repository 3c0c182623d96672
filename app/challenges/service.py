"""
Challenge (desafio) lifecycle.

    assigned -> pendente -> aprovado          (+XP_DESAFIO_COMPLETO, once)
                         -> rejeitado -> pendente (resubmission)
    assigned/pendente/rejeitado -> desistiu   (-XP_DESAFIO_PENALIDADE, once)

Services raise AppError subclasses and commit their own unit of work.
Notifications go out after the commit and never fail the action.
"""
from datetime import datetime, timezone
import logging
import re

from sqlalchemy.orm import Session

from app.auth.models import User
from app.core.config import XP_DESAFIO_COMPLETO, XP_DESAFIO_PENALIDADE
from app.core.errors import NotFoundError, ValidationError, StateConflictError
from app.ai import generator
from app.challenges.models import (
    Desafio,
    DesafioAtribuido,
    DesafioSubmission,
    UserDesafioProgress,
    STATUS_PENDENTE,
    STATUS_APROVADO,
    STATUS_REJEITADO,
    STATUS_DESISTIU,
    SUBMISSION_STATUSES,
)
from app.gamification import ledger
from app.gamification.models import SOURCE_DESAFIO, SOURCE_DESAFIO_DESISTENCIA
from app.gamification.ranking import invalidate_ranking_cache
from app.notifications.service import notify, notify_admins

logger = logging.getLogger(__name__)

GITHUB_REPO_REGEX = re.compile(r"^https?://(www\.)?github\.com/([\w.-]+)/([\w.-]+)", re.IGNORECASE)


def normalize_github_url(url: str) -> str | None:
    """Return https://github.com/<owner>/<repo>, or None if not a repository URL."""
    if not url or not isinstance(url, str):
        return None
    m = GITHUB_REPO_REGEX.match(url.strip())
    if not m:
        return None
    owner = m.group(2)
    repo = re.sub(r"\.git$", "", m.group(3))
    if not repo:
        return None
    return f"https://github.com/{owner}/{repo}"


def _get_desafio(db: Session, desafio_id: int) -> Desafio:
    desafio = db.get(Desafio, desafio_id)
    if not desafio:
        raise NotFoundError("Desafio não encontrado")
    return desafio


def _get_submission(db: Session, user_id: str, desafio_id: int) -> DesafioSubmission | None:
    return db.query(DesafioSubmission).filter_by(user_id=user_id, desafio_id=desafio_id).first()


# ======================================================
# ASSIGN / GENERATE
# ======================================================
def assign_challenge(db: Session, user: User, desafio: Desafio) -> DesafioAtribuido:
    existing = db.query(DesafioAtribuido).filter_by(user_id=user.id, desafio_id=desafio.id).first()
    if existing:
        return existing
    atribuicao = DesafioAtribuido(user_id=user.id, desafio_id=desafio.id)
    db.add(atribuicao)
    db.flush()
    logger.info("[DESAFIO] assigned desafio=%s to user=%s", desafio.id, user.id)
    return atribuicao


def generate_challenge(db: Session, user: User, tecnologia: str, nivel: str) -> Desafio:
    generator.validate_topic(tecnologia, nivel)

    data = generator.generate_challenge(tecnologia, nivel)
    desafio = Desafio(
        titulo=data["titulo"],
        descricao=data["descricao"],
        requisitos=data["requisitos"],
        tecnologia=tecnologia,
        nivel=nivel,
        xp=XP_DESAFIO_COMPLETO,
    )
    db.add(desafio)
    db.flush()
    assign_challenge(db, user, desafio)
    db.commit()
    db.refresh(desafio)
    logger.info("[DESAFIO] generated desafio=%s tecnologia=%s nivel=%s", desafio.id, tecnologia, nivel)
    return desafio


def list_user_challenges(db: Session, user: User) -> list[dict]:
    rows = (
        db.query(DesafioAtribuido, Desafio)
        .join(Desafio, Desafio.id == DesafioAtribuido.desafio_id)
        .filter(DesafioAtribuido.user_id == user.id)
        .order_by(DesafioAtribuido.id.desc())
        .all()
    )
    submissions = {
        s.desafio_id: s
        for s in db.query(DesafioSubmission).filter(DesafioSubmission.user_id == user.id).all()
    }
    result = []
    for _, desafio in rows:
        item = desafio.to_dict()
        sub = submissions.get(desafio.id)
        item["submission"] = sub.to_dict() if sub else None
        item["status"] = sub.status if sub else None
        result.append(item)
    return result


# ======================================================
# SUBMIT
# ======================================================
def submit_challenge(db: Session, user: User, desafio_id: int, github_url: str) -> DesafioSubmission:
    url = normalize_github_url(github_url)
    if not url:
        raise ValidationError("URL inválida. Use o formato: https://github.com/usuario/repositorio")

    desafio = _get_desafio(db, desafio_id)
    submission = _get_submission(db, user.id, desafio.id)

    if submission and submission.status == STATUS_APROVADO:
        raise StateConflictError("Este desafio já foi concluído")
    if submission and submission.status == STATUS_DESISTIU:
        raise StateConflictError("Você desistiu deste desafio")

    if submission is None:
        submission = DesafioSubmission(
            user_id=user.id,
            desafio_id=desafio.id,
            github_url=url,
            status=STATUS_PENDENTE,
        )
        db.add(submission)
    elif submission.status == STATUS_REJEITADO:
        # Resubmission goes back to the review queue with a clean slate
        submission.github_url = url
        submission.status = STATUS_PENDENTE
        submission.admin_notes = None
        submission.reviewed_by = None
        submission.reviewed_at = None
    else:
        submission.github_url = url

    db.commit()
    db.refresh(submission)
    logger.info("[DESAFIO] submission=%s user=%s desafio=%s status=%s",
                submission.id, user.id, desafio.id, submission.status)

    notify_admins(
        db,
        "Nova submissão de desafio",
        f"{user.name or user.email} enviou o desafio \"{desafio.titulo}\" para revisão.",
        action_url="/admin/desafios",
    )
    return submission


# ======================================================
# COMPLETE (idempotent award)
# ======================================================
def complete_challenge(db: Session, user_id: str, desafio: Desafio) -> bool:
    """
    Mark the challenge complete and award its XP.
    Returns False when the user had already completed it. Does not commit.
    """
    progress = db.query(UserDesafioProgress).filter_by(user_id=user_id, desafio_id=desafio.id).first()
    if progress and progress.completo:
        logger.info("[DESAFIO] user=%s desafio=%s already complete", user_id, desafio.id)
        return False

    if not progress:
        progress = UserDesafioProgress(user_id=user_id, desafio_id=desafio.id)
        db.add(progress)
    progress.completo = True
    progress.completed_at = datetime.now(timezone.utc)

    entry = ledger.append(
        db,
        user_id,
        SOURCE_DESAFIO,
        desafio.id,
        desafio.xp or XP_DESAFIO_COMPLETO,
        description=f"Desafio concluído: {desafio.titulo}",
        kind="completo",
    )
    return entry is not None


# ======================================================
# ADMIN REVIEW
# ======================================================
def list_submissions(db: Session, status: str | None = None) -> list[dict]:
    q = (
        db.query(DesafioSubmission, Desafio, User)
        .join(Desafio, Desafio.id == DesafioSubmission.desafio_id)
        .join(User, User.id == DesafioSubmission.user_id)
    )
    if status:
        if status not in SUBMISSION_STATUSES:
            raise ValidationError(f"Status inválido. Use: {', '.join(SUBMISSION_STATUSES)}")
        q = q.filter(DesafioSubmission.status == status)

    result = []
    for sub, desafio, owner in q.order_by(DesafioSubmission.created_at.desc(), DesafioSubmission.id.desc()).all():
        item = sub.to_dict()
        item["desafio"] = {"id": desafio.id, "titulo": desafio.titulo, "xp": desafio.xp}
        item["user"] = {"id": owner.id, "name": owner.name, "email": owner.email}
        result.append(item)
    return result


def review_submission(
    db: Session, admin: User, submission_id: int, status: str, admin_notes: str | None = None
) -> DesafioSubmission:
    if status not in (STATUS_APROVADO, STATUS_REJEITADO):
        raise ValidationError("Status deve ser 'aprovado' ou 'rejeitado'")

    submission = db.get(DesafioSubmission, submission_id)
    if not submission:
        raise NotFoundError("Submissão não encontrada")
    if submission.status != STATUS_PENDENTE:
        raise StateConflictError("Esta submissão já foi revisada")

    desafio = _get_desafio(db, submission.desafio_id)

    submission.status = status
    submission.admin_notes = admin_notes
    submission.reviewed_by = admin.id
    submission.reviewed_at = datetime.now(timezone.utc)

    awarded = False
    if status == STATUS_APROVADO:
        awarded = complete_challenge(db, submission.user_id, desafio)

    db.commit()
    db.refresh(submission)
    if awarded:
        invalidate_ranking_cache()
    logger.info("[DESAFIO] review submission=%s status=%s by=%s awarded=%s",
                submission.id, status, admin.id, awarded)

    if status == STATUS_APROVADO:
        notify(
            db,
            submission.user_id,
            "Desafio aprovado!",
            f"Seu desafio \"{desafio.titulo}\" foi aprovado. Você ganhou {desafio.xp} XP.",
            tipo="sucesso",
            action_url="/aluno/desafios",
        )
    else:
        notify(
            db,
            submission.user_id,
            "Desafio precisa de ajustes",
            f"Seu desafio \"{desafio.titulo}\" foi rejeitado. {admin_notes or ''}".strip(),
            tipo="alerta",
            action_url="/aluno/desafios",
        )
    return submission


# ======================================================
# ABANDON
# ======================================================
def abandon_challenge(db: Session, user: User, desafio_id: int) -> dict:
    submission = _get_submission(db, user.id, desafio_id)
    if submission and submission.status == STATUS_APROVADO:
        raise StateConflictError("Não é possível desistir de um desafio já aprovado")
    if submission and submission.status == STATUS_DESISTIU:
        raise StateConflictError("Você já desistiu deste desafio")

    atribuicao = db.query(DesafioAtribuido).filter_by(user_id=user.id, desafio_id=desafio_id).first()
    if not atribuicao:
        raise NotFoundError("Desafio não encontrado para este usuário")

    if submission is None:
        submission = DesafioSubmission(user_id=user.id, desafio_id=desafio_id)
        db.add(submission)
    submission.status = STATUS_DESISTIU

    db.delete(atribuicao)

    xp_anterior = user.xp or 0
    ledger.append(
        db,
        user.id,
        SOURCE_DESAFIO_DESISTENCIA,
        desafio_id,
        -XP_DESAFIO_PENALIDADE,
        description="Desistência de desafio",
        kind="penalidade",
    )

    db.commit()
    db.refresh(user)
    invalidate_ranking_cache()
    logger.info("[DESAFIO] user=%s abandoned desafio=%s xp %s -> %s",
                user.id, desafio_id, xp_anterior, user.xp)

    return {
        "message": f"Você desistiu do desafio e perdeu {XP_DESAFIO_PENALIDADE} XP.",
        "xp_perdido": XP_DESAFIO_PENALIDADE,
        "xp_anterior": xp_anterior,
        "xp_atual": user.xp,
    }
