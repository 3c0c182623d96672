from sqlalchemy import func
from sqlalchemy.orm import Session

from app.auth.models import User
from app.challenges.models import UserDesafioProgress, DesafioSubmission, STATUS_PENDENTE
from app.community.models import Pergunta, Resposta
from app.gamification.levels import level_info
from app.gamification.ranking import position_of, RANKING_GERAL, RANKING_MENSAL
from app.quizzes.models import UserQuizProgress


def user_stats(db: Session, user: User) -> dict:
    desafios_completos = (
        db.query(func.count(UserDesafioProgress.id))
        .filter(UserDesafioProgress.user_id == user.id, UserDesafioProgress.completo.is_(True))
        .scalar()
    ) or 0
    desafios_pendentes = (
        db.query(func.count(DesafioSubmission.id))
        .filter(DesafioSubmission.user_id == user.id, DesafioSubmission.status == STATUS_PENDENTE)
        .scalar()
    ) or 0
    quizzes_completos, tentativas = (
        db.query(
            func.count(UserQuizProgress.id),
            func.coalesce(func.sum(UserQuizProgress.tentativas), 0),
        )
        .filter(UserQuizProgress.user_id == user.id, UserQuizProgress.completo.is_(True))
        .one()
    )
    perguntas = db.query(func.count(Pergunta.id)).filter(Pergunta.autor_id == user.id).scalar() or 0
    respostas = (
        db.query(func.count(Resposta.id))
        .filter(Resposta.autor_id == user.id, Resposta.resposta_pai_id.is_(None))
        .scalar()
    ) or 0
    respostas_aceitas = (
        db.query(func.count(Resposta.id))
        .filter(Resposta.autor_id == user.id, Resposta.melhor_resposta.is_(True))
        .scalar()
    ) or 0

    return {
        "desafiosCompletos": int(desafios_completos),
        "desafiosPendentes": int(desafios_pendentes),
        "quizzesCompletos": int(quizzes_completos or 0),
        "tentativasQuiz": int(tentativas or 0),
        "perguntas": int(perguntas),
        "respostas": int(respostas),
        "respostasAceitas": int(respostas_aceitas),
        "xpMensal": user.xp_mensal or 0,
        "nivel": level_info(user.xp or 0),
        "posicaoGeral": position_of(db, user, RANKING_GERAL),
        "posicaoMensal": position_of(db, user, RANKING_MENSAL),
    }
