import logging

from sqlalchemy.orm import Session

from app.auth.models import User
from app.core.config import XP_FORMULARIO_PREENCHIDO
from app.core.errors import NotFoundError, ValidationError
from app.forms.models import Formulario, FormularioResposta
from app.gamification import ledger
from app.gamification.models import SOURCE_FORMULARIO
from app.gamification.ranking import invalidate_ranking_cache

logger = logging.getLogger(__name__)


def list_forms(db: Session, user: User) -> list[Formulario]:
    """Admins see every form, students only the active ones."""
    q = db.query(Formulario)
    if not user.is_admin:
        q = q.filter(Formulario.ativo.is_(True))
    return q.order_by(Formulario.created_at.desc(), Formulario.id.desc()).all()


def get_form(db: Session, user: User, formulario_id: int) -> tuple[Formulario, FormularioResposta | None]:
    formulario = db.get(Formulario, formulario_id)
    if not formulario or (not formulario.ativo and not user.is_admin):
        raise NotFoundError("Formulário não encontrado")
    minha = (
        db.query(FormularioResposta)
        .filter_by(formulario_id=formulario.id, user_id=user.id)
        .order_by(FormularioResposta.id.desc())
        .first()
    )
    return formulario, minha


def submit_form(db: Session, user: User, formulario_id: int, respostas) -> FormularioResposta:
    formulario = db.get(Formulario, formulario_id)
    if not formulario or not formulario.ativo:
        raise NotFoundError("Formulário não encontrado ou inativo")
    if not respostas or not isinstance(respostas, dict):
        raise ValidationError("Respostas inválidas")

    resposta = FormularioResposta(formulario_id=formulario.id, user_id=user.id, respostas=respostas)
    db.add(resposta)
    db.flush()

    if XP_FORMULARIO_PREENCHIDO > 0:
        ledger.append(
            db,
            user.id,
            SOURCE_FORMULARIO,
            formulario.id,
            XP_FORMULARIO_PREENCHIDO,
            description=f"Formulário preenchido: {formulario.titulo}",
            kind=f"resposta-{resposta.id}",
        )

    db.commit()
    db.refresh(resposta)
    invalidate_ranking_cache()
    logger.info("[FORM] user=%s answered formulario=%s resposta=%s", user.id, formulario.id, resposta.id)
    return resposta


# ======================================================
# ADMIN CRUD
# ======================================================
def _clean_perguntas(value) -> list:
    if not isinstance(value, list) or not all(isinstance(p, dict) for p in value):
        raise ValidationError("perguntas deve ser uma lista de objetos")
    return value


def create_form(db: Session, admin: User, data: dict) -> Formulario:
    titulo = data.get("titulo")
    if not isinstance(titulo, str) or not titulo.strip():
        raise ValidationError("Título é obrigatório")
    ativo = data.get("ativo", True)
    if not isinstance(ativo, bool):
        raise ValidationError("ativo deve ser booleano")

    formulario = Formulario(
        titulo=titulo.strip(),
        descricao=(data.get("descricao") or "").strip() or None,
        perguntas=_clean_perguntas(data["perguntas"]) if data.get("perguntas") is not None else [],
        ativo=ativo,
    )
    db.add(formulario)
    db.commit()
    db.refresh(formulario)
    logger.info("[FORM] admin=%s created formulario=%s ativo=%s", admin.id, formulario.id, formulario.ativo)
    return formulario


def update_form(db: Session, admin: User, formulario_id: int, data: dict) -> Formulario:
    formulario = db.get(Formulario, formulario_id)
    if not formulario:
        raise NotFoundError("Formulário não encontrado")

    if data.get("titulo") is not None:
        if not isinstance(data["titulo"], str) or not data["titulo"].strip():
            raise ValidationError("Título é obrigatório")
        formulario.titulo = data["titulo"].strip()
    if "descricao" in data:
        formulario.descricao = (data["descricao"] or "").strip() or None
    if data.get("perguntas") is not None:
        formulario.perguntas = _clean_perguntas(data["perguntas"])
    if data.get("ativo") is not None:
        if not isinstance(data["ativo"], bool):
            raise ValidationError("ativo deve ser booleano")
        formulario.ativo = data["ativo"]

    db.commit()
    db.refresh(formulario)
    logger.info("[FORM] admin=%s updated formulario=%s fields=%s", admin.id, formulario.id, sorted(data))
    return formulario


def delete_form(db: Session, admin: User, formulario_id: int) -> dict:
    """Remove a form and its responses. XP already earned stays in the ledger."""
    formulario = db.get(Formulario, formulario_id)
    if not formulario:
        raise NotFoundError("Formulário não encontrado")

    removed = (
        db.query(FormularioResposta)
        .filter(FormularioResposta.formulario_id == formulario.id)
        .delete(synchronize_session=False)
    )
    db.delete(formulario)
    db.commit()
    logger.info("[FORM] admin=%s deleted formulario=%s respostas=%s", admin.id, formulario_id, removed)
    return {"formulario_id": formulario_id, "respostasRemovidas": removed}
