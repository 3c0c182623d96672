from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func

from app.db.base import Base


class Formulario(Base):
    __tablename__ = "formularios"

    id = Column(Integer, primary_key=True, index=True)

    titulo = Column(String(255), nullable=False)
    descricao = Column(Text, nullable=True)
    # [{"id", "tipo", "pergunta", "opcoes"?}]
    perguntas = Column(JSON, nullable=False, default=list)
    ativo = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "titulo": self.titulo,
            "descricao": self.descricao,
            "perguntas": self.perguntas or [],
            "ativo": bool(self.ativo),
        }


class FormularioResposta(Base):
    __tablename__ = "formulario_respostas"

    id = Column(Integer, primary_key=True, index=True)

    formulario_id = Column(Integer, ForeignKey("formularios.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    respostas = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "formulario_id": self.formulario_id,
            "user_id": self.user_id,
            "respostas": self.respostas,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
