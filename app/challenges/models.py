from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint, true
from sqlalchemy.sql import func

from app.db.base import Base
from app.core.config import XP_DESAFIO_COMPLETO

STATUS_PENDENTE = "pendente"
STATUS_APROVADO = "aprovado"
STATUS_REJEITADO = "rejeitado"
STATUS_DESISTIU = "desistiu"
SUBMISSION_STATUSES = (STATUS_PENDENTE, STATUS_APROVADO, STATUS_REJEITADO, STATUS_DESISTIU)


class Desafio(Base):
    __tablename__ = "desafios"

    id = Column(Integer, primary_key=True, index=True)

    is_active = Column(Boolean, nullable=False, default=True, server_default=true())

    titulo = Column(String(255), nullable=False)
    descricao = Column(Text, nullable=False)
    requisitos = Column(JSON, nullable=False, default=list)

    tecnologia = Column(String(64), nullable=False, default="")
    nivel = Column(String(32), nullable=False, default="iniciante")

    xp = Column(Integer, nullable=False, default=XP_DESAFIO_COMPLETO)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "titulo": self.titulo,
            "descricao": self.descricao,
            "requisitos": self.requisitos or [],
            "tecnologia": self.tecnologia,
            "nivel": self.nivel,
            "xp": self.xp,
        }


class DesafioAtribuido(Base):
    """Active assignment of a challenge to a user."""
    __tablename__ = "user_desafio_atribuido"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    desafio_id = Column(Integer, ForeignKey("desafios.id"), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "desafio_id", name="uq_desafio_atribuido"),
    )


class DesafioSubmission(Base):
    __tablename__ = "desafio_submissions"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    desafio_id = Column(Integer, ForeignKey("desafios.id"), nullable=False)

    github_url = Column(String(512), nullable=True)
    # pendente | aprovado | rejeitado | desistiu
    status = Column(String(16), nullable=False, default=STATUS_PENDENTE)

    admin_notes = Column(Text, nullable=True)
    reviewed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "desafio_id", name="uq_desafio_submission"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "desafio_id": self.desafio_id,
            "github_url": self.github_url,
            "status": self.status,
            "admin_notes": self.admin_notes,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class UserDesafioProgress(Base):
    __tablename__ = "user_desafio_progress"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    desafio_id = Column(Integer, ForeignKey("desafios.id"), nullable=False)

    completo = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "desafio_id", name="uq_user_desafio_progress"),
    )
