"""
Community Q&A: questions, answers, comments, votes and the XP they carry.

XP rules:
  - question created: +XP_COMUNIDADE_PERGUNTA          (kind "pergunta")
  - direct answer created: +XP_COMUNIDADE_RESPOSTA     (kind "resposta")
  - comment created: nothing
  - answer accepted: top-up to XP_COMUNIDADE_RESPOSTA_CERTA (kind "resposta_certa")

Question ids and answer ids share the ledger's source_id space; the kind
tells them apart.

Deleting a question or an answer takes that XP back inside the same
transaction as the deletion.
"""
from collections import defaultdict
import logging

from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from app.auth.models import User
from app.core.config import (
    XP_COMUNIDADE_PERGUNTA,
    XP_COMUNIDADE_RESPOSTA,
    XP_COMUNIDADE_RESPOSTA_CERTA,
)
from app.core.errors import (
    AppError,
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
    UpstreamError,
    ValidationError,
)
from app.community.models import Pergunta, Resposta, Voto
from app.gamification import ledger
from app.gamification.models import SOURCE_COMUNIDADE
from app.gamification.ranking import invalidate_ranking_cache
from app.notifications.service import notify

logger = logging.getLogger(__name__)

KIND_PERGUNTA = "pergunta"
KIND_RESPOSTA = "resposta"
KIND_RESPOSTA_CERTA = "resposta_certa"
ANSWER_KINDS = (KIND_RESPOSTA, KIND_RESPOSTA_CERTA)


def _autor_dict(user: User | None, fallback_id: str | None = None) -> dict:
    if not user:
        return {"id": fallback_id, "nome": "Usuário", "nivel": 1, "avatar": None}
    return {"id": user.id, "nome": user.name, "nivel": user.level or 1, "avatar": user.avatar_url}


def _get_pergunta(db: Session, pergunta_id: int) -> Pergunta:
    pergunta = db.get(Pergunta, pergunta_id)
    if not pergunta:
        raise NotFoundError("Pergunta não encontrada")
    return pergunta


def _get_resposta(db: Session, resposta_id: int) -> Resposta:
    resposta = db.get(Resposta, resposta_id)
    if not resposta:
        raise NotFoundError("Resposta não encontrada")
    return resposta


def _award_best_effort(db: Session, user_id: str, source_id: int, amount: int, kind: str, description: str):
    """Creation awards never undo the post they belong to."""
    if amount <= 0:
        return None
    try:
        entry = ledger.append(db, user_id, SOURCE_COMUNIDADE, source_id, amount, description=description, kind=kind)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("[COMUNIDADE] failed to award %s xp user=%s source_id=%s kind=%s",
                         amount, user_id, source_id, kind)
        return None
    invalidate_ranking_cache()
    return entry


def pergunta_to_dict(pergunta: Pergunta, autor: User | None = None) -> dict:
    return {
        "id": pergunta.id,
        "titulo": pergunta.titulo,
        "conteudo": pergunta.conteudo,
        "categoria": pergunta.categoria,
        "tags": pergunta.tags or [],
        "votos": pergunta.votos or 0,
        "visualizacoes": pergunta.visualizacoes or 0,
        "resolvida": bool(pergunta.resolvida),
        "melhor_resposta_id": pergunta.melhor_resposta_id,
        "autor_id": pergunta.autor_id,
        "autor": _autor_dict(autor, pergunta.autor_id),
        "created_at": pergunta.created_at.isoformat() if pergunta.created_at else None,
    }


def resposta_to_dict(resposta: Resposta, autor: User | None = None) -> dict:
    return {
        "id": resposta.id,
        "perguntaId": resposta.pergunta_id,
        "respostaPaiId": resposta.resposta_pai_id,
        "conteudo": resposta.conteudo,
        "votos": resposta.votos or 0,
        "melhorResposta": bool(resposta.melhor_resposta),
        "autor": _autor_dict(autor, resposta.autor_id),
        "dataCriacao": resposta.created_at.isoformat() if resposta.created_at else None,
    }


# ======================================================
# READ
# ======================================================
def list_questions(
    db: Session,
    user: User,
    categoria: str | None = None,
    search: str | None = None,
    autor_id: str | None = None,
    limit: int = 100,
) -> list[dict]:
    q = db.query(Pergunta)
    if categoria:
        q = q.filter(Pergunta.categoria == categoria)
    if autor_id:
        q = q.filter(Pergunta.autor_id == autor_id)
    if search and search.strip():
        term = f"%{search.strip().lower()}%"
        q = q.filter(or_(func.lower(Pergunta.titulo).like(term), func.lower(Pergunta.conteudo).like(term)))
    perguntas = q.order_by(Pergunta.created_at.desc(), Pergunta.id.desc()).limit(limit).all()

    ids = [p.id for p in perguntas]
    counts = {}
    liked = set()
    autores = {}
    if ids:
        counts = dict(
            db.query(Resposta.pergunta_id, func.count(Resposta.id))
            .filter(Resposta.pergunta_id.in_(ids), Resposta.resposta_pai_id.is_(None))
            .group_by(Resposta.pergunta_id)
            .all()
        )
        liked = {
            row[0]
            for row in db.query(Voto.pergunta_id).filter(Voto.user_id == user.id, Voto.pergunta_id.in_(ids)).all()
        }
        autor_ids = list({p.autor_id for p in perguntas})
        autores = {u.id: u for u in db.query(User).filter(User.id.in_(autor_ids)).all()}

    result = []
    for p in perguntas:
        item = pergunta_to_dict(p, autores.get(p.autor_id))
        item["respostas"] = counts.get(p.id, 0)
        item["curtida"] = p.id in liked
        result.append(item)
    return result


def get_question_detail(db: Session, user: User, pergunta_id: int) -> dict:
    pergunta = _get_pergunta(db, pergunta_id)

    todas = db.query(Resposta).filter(Resposta.pergunta_id == pergunta.id).all()
    user_ids = {pergunta.autor_id} | {r.autor_id for r in todas}
    autores = {u.id: u for u in db.query(User).filter(User.id.in_(list(user_ids))).all()}

    comentarios = defaultdict(list)
    for r in sorted(todas, key=lambda r: r.id):
        if r.resposta_pai_id is not None:
            comentarios[r.resposta_pai_id].append(resposta_to_dict(r, autores.get(r.autor_id)))

    # Accepted answer first, then oldest first
    diretas = sorted(
        (r for r in todas if r.resposta_pai_id is None),
        key=lambda r: (not r.melhor_resposta, r.id),
    )
    respostas = []
    for r in diretas:
        item = resposta_to_dict(r, autores.get(r.autor_id))
        item["comentarios"] = comentarios.get(r.id, [])
        respostas.append(item)

    item = pergunta_to_dict(pergunta, autores.get(pergunta.autor_id))
    item["respostas"] = respostas
    item["curtida"] = (
        db.query(Voto.id).filter(Voto.user_id == user.id, Voto.pergunta_id == pergunta.id).first() is not None
    )
    return item


def register_view(db: Session, pergunta_id: int) -> int:
    pergunta = _get_pergunta(db, pergunta_id)
    pergunta.visualizacoes = (pergunta.visualizacoes or 0) + 1
    db.commit()
    return pergunta.visualizacoes


# ======================================================
# CREATE
# ======================================================
def create_question(
    db: Session, user: User, titulo: str, conteudo: str, categoria: str | None = None, tags=None
) -> Pergunta:
    titulo = (titulo or "").strip()
    conteudo = (conteudo or "").strip()
    if len(titulo) < 3:
        raise ValidationError("Título muito curto (mínimo 3 caracteres)")
    if len(conteudo) < 10:
        raise ValidationError("Descrição muito curta (mínimo 10 caracteres)")

    pergunta = Pergunta(
        autor_id=user.id,
        titulo=titulo,
        conteudo=conteudo,
        categoria=(categoria or "").strip() or None,
        tags=[str(t).strip() for t in (tags or []) if str(t).strip()],
    )
    db.add(pergunta)
    db.commit()
    db.refresh(pergunta)
    logger.info("[COMUNIDADE] question=%s created by user=%s", pergunta.id, user.id)

    _award_best_effort(
        db, user.id, pergunta.id, XP_COMUNIDADE_PERGUNTA, KIND_PERGUNTA,
        f"Pergunta criada: {pergunta.titulo}",
    )
    return pergunta


def create_answer(
    db: Session, user: User, pergunta_id: int, conteudo: str, resposta_pai_id: int | None = None
) -> Resposta:
    conteudo = (conteudo or "").strip()
    if not conteudo:
        raise ValidationError("Conteúdo da resposta é obrigatório")

    pergunta = _get_pergunta(db, pergunta_id)

    if resposta_pai_id is not None:
        pai = db.get(Resposta, resposta_pai_id)
        if not pai or pai.pergunta_id != pergunta.id or pai.resposta_pai_id is not None:
            raise ValidationError("Comentário deve responder a uma resposta desta pergunta")

    resposta = Resposta(
        pergunta_id=pergunta.id,
        autor_id=user.id,
        conteudo=conteudo,
        resposta_pai_id=resposta_pai_id,
    )
    db.add(resposta)
    db.commit()
    db.refresh(resposta)
    logger.info("[COMUNIDADE] %s=%s on question=%s by user=%s",
                "comment" if resposta.is_comment else "answer", resposta.id, pergunta.id, user.id)

    if not resposta.is_comment:
        _award_best_effort(
            db, user.id, resposta.id, XP_COMUNIDADE_RESPOSTA, KIND_RESPOSTA,
            f"Resposta na pergunta: {pergunta.titulo}",
        )
        if pergunta.autor_id != user.id:
            notify(
                db,
                pergunta.autor_id,
                "Nova resposta",
                f"{user.name or 'Alguém'} respondeu sua pergunta \"{pergunta.titulo}\".",
                action_url=f"/comunidade/perguntas/{pergunta.id}",
            )
    return resposta


# ======================================================
# ACCEPT
# ======================================================
def accept_answer(db: Session, user: User, resposta_id: int) -> dict:
    resposta = _get_resposta(db, resposta_id)
    if resposta.is_comment:
        raise StateConflictError("Comentários não podem ser marcados como resposta correta")

    pergunta = _get_pergunta(db, resposta.pergunta_id)
    if pergunta.autor_id != user.id:
        raise PermissionDeniedError("Apenas o autor da pergunta pode aceitar uma resposta")
    if resposta.autor_id == user.id:
        raise StateConflictError("Você não pode aceitar sua própria resposta")
    if resposta.melhor_resposta:
        raise StateConflictError("Esta resposta já foi aceita")
    if pergunta.melhor_resposta_id is not None:
        raise StateConflictError("Esta pergunta já tem uma resposta aceita")

    resposta.melhor_resposta = True
    pergunta.melhor_resposta_id = resposta.id
    pergunta.resolvida = True

    ja_recebido = ledger.sum_for_source(db, resposta.autor_id, SOURCE_COMUNIDADE, resposta.id, kinds=ANSWER_KINDS)
    top_up = XP_COMUNIDADE_RESPOSTA_CERTA - ja_recebido
    xp_ganho = 0
    if top_up > 0:
        entry = ledger.append(
            db,
            resposta.autor_id,
            SOURCE_COMUNIDADE,
            resposta.id,
            top_up,
            description=f"Resposta aceita na pergunta: {pergunta.titulo}",
            kind=KIND_RESPOSTA_CERTA,
        )
        if entry is not None:
            xp_ganho = top_up

    db.commit()
    if xp_ganho:
        invalidate_ranking_cache()
    logger.info("[COMUNIDADE] answer=%s accepted on question=%s top_up=%s (had %s)",
                resposta.id, pergunta.id, xp_ganho, ja_recebido)

    notify(
        db,
        resposta.autor_id,
        "Sua resposta foi aceita!",
        f"Sua resposta na pergunta \"{pergunta.titulo}\" foi marcada como correta.",
        tipo="sucesso",
        action_url=f"/comunidade/perguntas/{pergunta.id}",
    )
    return {"resposta_id": resposta.id, "pergunta_id": pergunta.id, "xpGanho": xp_ganho}


# ======================================================
# VOTES
# ======================================================
def _toggle_vote(db: Session, user: User, target, **filters) -> dict:
    existing = db.query(Voto).filter_by(user_id=user.id, **filters).first()
    if existing:
        db.delete(existing)
        target.votos = max(0, (target.votos or 0) - 1)
        curtida = False
    else:
        db.add(Voto(user_id=user.id, **filters))
        target.votos = (target.votos or 0) + 1
        curtida = True
    db.commit()
    return {"curtida": curtida, "votos": target.votos}


def toggle_question_vote(db: Session, user: User, pergunta_id: int) -> dict:
    pergunta = _get_pergunta(db, pergunta_id)
    return _toggle_vote(db, user, pergunta, pergunta_id=pergunta.id)


def toggle_answer_vote(db: Session, user: User, resposta_id: int) -> dict:
    resposta = _get_resposta(db, resposta_id)
    return _toggle_vote(db, user, resposta, resposta_id=resposta.id)


# ======================================================
# DELETE (with XP reversal)
# ======================================================
def delete_question(db: Session, user: User, pergunta_id: int) -> dict:
    pergunta = _get_pergunta(db, pergunta_id)
    if pergunta.autor_id != user.id and not user.is_admin:
        raise PermissionDeniedError("Você não tem permissão para deletar esta pergunta")

    try:
        todas = db.query(Resposta).filter(Resposta.pergunta_id == pergunta.id).all()
        diretas = [r for r in todas if r.resposta_pai_id is None]
        comentarios = [r for r in todas if r.resposta_pai_id is not None]

        owed: dict[str, int] = defaultdict(int)
        owed[pergunta.autor_id] += XP_COMUNIDADE_PERGUNTA
        for r in diretas:
            owed[r.autor_id] += XP_COMUNIDADE_RESPOSTA_CERTA if r.melhor_resposta else XP_COMUNIDADE_RESPOSTA

        ledger.remove_entries(db, SOURCE_COMUNIDADE, [pergunta.id], kinds=[KIND_PERGUNTA])
        ledger.remove_entries(db, SOURCE_COMUNIDADE, [r.id for r in diretas], kinds=ANSWER_KINDS)

        resposta_ids = [r.id for r in todas]
        votos_q = db.query(Voto).filter(Voto.pergunta_id == pergunta.id)
        if resposta_ids:
            votos_q = db.query(Voto).filter(or_(Voto.pergunta_id == pergunta.id, Voto.resposta_id.in_(resposta_ids)))
        votos_q.delete(synchronize_session=False)

        for c in comentarios:
            db.delete(c)
        db.flush()
        for r in diretas:
            db.delete(r)
        db.flush()
        db.delete(pergunta)

        revertidos = {}
        for user_id, amount in owed.items():
            if amount <= 0:
                continue
            affected = db.get(User, user_id)
            if not affected:
                continue
            old_xp, new_xp = ledger.revert_user_xp(affected, amount)
            revertidos[user_id] = {"xpAnterior": old_xp, "xpNovo": new_xp, "xpRevertido": amount}

        db.commit()
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("[COMUNIDADE] failed to delete question=%s", pergunta_id)
        raise UpstreamError("Erro ao deletar pergunta", details=str(e))

    invalidate_ranking_cache()
    logger.info("[COMUNIDADE] question=%s deleted by user=%s answers=%s comments=%s reverted=%s",
                pergunta_id, user.id, len(diretas), len(comentarios), revertidos)
    return {"pergunta_id": pergunta_id, "xpRevertido": revertidos}


def delete_answer(db: Session, user: User, resposta_id: int) -> dict:
    resposta = _get_resposta(db, resposta_id)
    if resposta.autor_id != user.id:
        raise PermissionDeniedError("Você não tem permissão para deletar esta resposta")
    if resposta.melhor_resposta:
        raise StateConflictError("Não é possível deletar uma resposta aceita")
    has_comments = db.query(Resposta.id).filter(Resposta.resposta_pai_id == resposta.id).first() is not None
    if has_comments:
        raise StateConflictError("Não é possível deletar uma resposta que possui comentários")

    try:
        amount = 0
        if not resposta.is_comment:
            amount = ledger.sum_for_source(db, resposta.autor_id, SOURCE_COMUNIDADE, resposta.id, kinds=ANSWER_KINDS)
            ledger.remove_entries(db, SOURCE_COMUNIDADE, [resposta.id], kinds=ANSWER_KINDS, user_id=resposta.autor_id)

        db.query(Voto).filter(Voto.resposta_id == resposta.id).delete(synchronize_session=False)
        db.delete(resposta)

        old_xp = new_xp = user.xp
        if amount > 0:
            old_xp, new_xp = ledger.revert_user_xp(user, amount)

        db.commit()
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("[COMUNIDADE] failed to delete answer=%s", resposta_id)
        raise UpstreamError("Erro ao deletar resposta", details=str(e))

    if amount > 0:
        invalidate_ranking_cache()
    logger.info("[COMUNIDADE] answer=%s deleted by user=%s reverted=%s", resposta_id, user.id, amount)
    return {"resposta_id": resposta_id, "xpRevertido": amount, "xpAnterior": old_xp, "xpNovo": new_xp}
