from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.sql import func

from app.db.base import Base
from app.core.config import XP_QUIZ_MAXIMO


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)

    titulo = Column(String(255), nullable=False)
    descricao = Column(Text, nullable=False, default="")
    tecnologia = Column(String(64), nullable=False, default="")
    nivel = Column(String(32), nullable=False, default="iniciante")

    # Maximum XP a single 100% attempt is worth
    xp = Column(Integer, nullable=False, default=XP_QUIZ_MAXIMO)

    # [{"id", "prompt", "options": [{"id", "label", "text"}], "correctOptionId", "points", "explanation"}]
    perguntas = Column(JSON, nullable=False, default=list)

    disponivel = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class UserQuizProgress(Base):
    __tablename__ = "user_quiz_progress"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), nullable=False)

    completo = Column(Boolean, nullable=False, default=False)
    pontuacao = Column(Integer, nullable=True)
    melhor_pontuacao = Column(Integer, nullable=True)
    tentativas = Column(Integer, nullable=False, default=0)
    respostas = Column(JSON, nullable=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "quiz_id", name="uq_user_quiz"),
    )
