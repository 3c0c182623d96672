from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func

from app.db.base import Base


class Notificacao(Base):
    __tablename__ = "notificacoes"

    id = Column(Integer, primary_key=True, index=True)

    target_user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    titulo = Column(String(255), nullable=False)
    mensagem = Column(Text, nullable=False)
    # info | sucesso | alerta
    tipo = Column(String(32), nullable=False, default="info")
    action_url = Column(String(512), nullable=True)
    lida = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "titulo": self.titulo,
            "mensagem": self.mensagem,
            "tipo": self.tipo,
            "action_url": self.action_url,
            "lida": bool(self.lida),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
