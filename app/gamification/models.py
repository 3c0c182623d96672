from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint, Index

from app.db.base import Base

SOURCE_AULA = "aula"
SOURCE_QUIZ = "quiz"
SOURCE_DESAFIO = "desafio"
SOURCE_COMUNIDADE = "comunidade"
SOURCE_FORMULARIO = "formulario"
SOURCE_BONIFICACAO = "bonificacao"
SOURCE_DESAFIO_DESISTENCIA = "desafio_desistencia"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class XPLedgerEntry(Base):
    """
    One immutable XP grant or penalty.

    The sum of a user's rows is the authoritative XP total; users.xp is a
    cached projection. Rows are only ever deleted by a reversal.
    """
    __tablename__ = "user_xp_history"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # aula | quiz | desafio | comunidade | formulario | bonificacao | desafio_desistencia
    source = Column(String(32), nullable=False)
    # Id of the entity that caused the entry (quiz, challenge, question, answer...)
    source_id = Column(String(64), nullable=False)
    # Which award within the source, e.g. "pergunta", "resposta_certa", "tentativa-3-9f2c1a7e"
    kind = Column(String(64), nullable=False, default="award")

    amount = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        # At most one award per (user, source, source_id, kind)
        UniqueConstraint("user_id", "source", "source_id", "kind", name="uq_xp_award"),
        Index("ix_user_xp_history_created_at", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "source": self.source,
            "source_id": self.source_id,
            "kind": self.kind,
            "amount": self.amount,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
