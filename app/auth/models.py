from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
import uuid

from app.db.base import Base

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"

ACCESS_LIMITED = "limited"
ACCESS_FULL = "full"


class User(Base):
    __tablename__ = "users"

    # Same id as the auth provider's subject claim
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False, default="")
    avatar_url = Column(String, nullable=True)

    # "student" (default) or "admin"
    role = Column(String, default=ROLE_STUDENT, nullable=False)
    # "limited" accounts do not show up in rankings
    access_level = Column(String, default=ACCESS_FULL, nullable=False)

    # Cached projections of user_xp_history; kept in sync by app.gamification.ledger
    xp = Column(Integer, default=0, nullable=False)
    xp_mensal = Column(Integer, default=0, nullable=False)
    level = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
