from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.sql import func

from app.db.base import Base


class Pergunta(Base):
    __tablename__ = "perguntas"

    id = Column(Integer, primary_key=True, index=True)

    autor_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    titulo = Column(String(255), nullable=False)
    conteudo = Column(Text, nullable=False)
    categoria = Column(String(64), nullable=True)
    tags = Column(JSON, nullable=False, default=list)

    visualizacoes = Column(Integer, nullable=False, default=0)
    votos = Column(Integer, nullable=False, default=0)

    resolvida = Column(Boolean, nullable=False, default=False)
    melhor_resposta_id = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Resposta(Base):
    """A direct answer (resposta_pai_id is NULL) or a comment on an answer."""
    __tablename__ = "respostas"

    id = Column(Integer, primary_key=True, index=True)

    pergunta_id = Column(Integer, ForeignKey("perguntas.id"), nullable=False, index=True)
    autor_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    resposta_pai_id = Column(Integer, ForeignKey("respostas.id"), nullable=True, index=True)

    conteudo = Column(Text, nullable=False)

    melhor_resposta = Column(Boolean, nullable=False, default=False)
    votos = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def is_comment(self) -> bool:
        return self.resposta_pai_id is not None


class Voto(Base):
    """One like per user on a question or on an answer."""
    __tablename__ = "votos"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    pergunta_id = Column(Integer, ForeignKey("perguntas.id"), nullable=True)
    resposta_id = Column(Integer, ForeignKey("respostas.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "pergunta_id", name="uq_voto_pergunta"),
        UniqueConstraint("user_id", "resposta_id", name="uq_voto_resposta"),
    )
