import logging
import os

from fastapi import FastAPI

from app.db.base import Base, engine, describe_engine
from app.core.errors import register_exception_handlers

# Import models so create_all picks them up
from app.auth.models import User  # noqa: F401
from app.gamification.models import XPLedgerEntry  # noqa: F401
from app.quizzes.models import Quiz, UserQuizProgress  # noqa: F401
from app.challenges.models import Desafio, DesafioAtribuido, DesafioSubmission, UserDesafioProgress  # noqa: F401
from app.community.models import Pergunta, Resposta, Voto  # noqa: F401
from app.forms.models import Formulario, FormularioResposta  # noqa: F401
from app.notifications.models import Notificacao  # noqa: F401

from app.gamification.routes import users_router, ranking_router, xp_router
from app.quizzes.routes import router as quiz_router
from app.challenges.routes import router as desafio_router
from app.admin.routes import router as admin_router
from app.community.routes import router as comunidade_router
from app.forms.routes import router as formulario_router
from app.notifications.routes import router as notificacao_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Escola Nova Era Tech", version="0.1.0")

register_exception_handlers(app)

logger = logging.getLogger("app.main")
logger.info("[DB] %s", describe_engine())

# Create database tables (still useful in dev; in production prefer Alembic)
Base.metadata.create_all(bind=engine)

# Log OpenAI status once at startup (unified client)
try:
    from app.ai.openai_client import log_startup as _ai_log_startup
    _ai_log_startup()
except Exception as _e:
    print(f"[AI] startup log failed: {_e}", flush=True)

# Include routers
app.include_router(users_router)
app.include_router(ranking_router)
app.include_router(xp_router)
app.include_router(quiz_router)
app.include_router(desafio_router)
app.include_router(admin_router)
app.include_router(comunidade_router)
app.include_router(formulario_router)
app.include_router(notificacao_router)


@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok"}
