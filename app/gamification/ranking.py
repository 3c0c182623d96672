"""
Ranking aggregator.

- get_ranking: all-time ("geral") or current-month ("mensal") leaderboard
  read from the cached totals on users.
- get_champions: top user of every closed calendar month, computed from
  the XP ledger.

Only users with role student/admin and full access are ranked. Ties are
broken by user id so positions are deterministic.
"""
from collections import defaultdict
from datetime import datetime
import logging
import time

from sqlalchemy.orm import Session

from app.auth.models import User, ROLE_STUDENT, ROLE_ADMIN, ACCESS_FULL
from app.core.config import RANKING_CACHE_TTL_SECONDS
from app.gamification.levels import level_for_xp
from app.gamification.models import XPLedgerEntry, utcnow

logger = logging.getLogger(__name__)

RANKING_GERAL = "geral"
RANKING_MENSAL = "mensal"
RANKING_TYPES = (RANKING_GERAL, RANKING_MENSAL)

MESES = (
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
)


# ---------------------------------------------------------------------------
# CACHE
# ---------------------------------------------------------------------------

_cache: dict[tuple[str, int], tuple[float, list[dict]]] = {}


def get_cached_ranking(ranking_type: str, limit: int) -> list[dict] | None:
    hit = _cache.get((ranking_type, limit))
    if not hit:
        return None
    stored_at, rows = hit
    if time.monotonic() - stored_at > RANKING_CACHE_TTL_SECONDS:
        _cache.pop((ranking_type, limit), None)
        return None
    return rows


def set_cached_ranking(ranking_type: str, limit: int, rows: list[dict]) -> None:
    _cache[(ranking_type, limit)] = (time.monotonic(), rows)


def invalidate_ranking_cache() -> None:
    _cache.clear()
    logger.debug("[RANKING] cache invalidated")


# ---------------------------------------------------------------------------
# LEADERBOARD
# ---------------------------------------------------------------------------

def _eligible_users(db: Session):
    return db.query(User).filter(
        User.role.in_([ROLE_STUDENT, ROLE_ADMIN]),
        User.access_level == ACCESS_FULL,
    )


def get_ranking(db: Session, ranking_type: str = RANKING_MENSAL, limit: int = 50) -> list[dict]:
    if ranking_type not in RANKING_TYPES:
        raise ValueError(f"unknown ranking type {ranking_type!r}")

    column = User.xp_mensal if ranking_type == RANKING_MENSAL else User.xp
    users = (
        _eligible_users(db)
        .order_by(column.desc(), User.id.asc())
        .limit(limit)
        .all()
    )
    logger.info("[RANKING] %s rows=%s", ranking_type, len(users))

    return [
        {
            "id": u.id,
            "name": u.name,
            "avatar_url": u.avatar_url,
            "level": u.level,
            "xp": u.xp,
            "xp_mensal": u.xp_mensal,
            "position": idx + 1,
        }
        for idx, u in enumerate(users)
    ]


def get_ranking_cached(db: Session, ranking_type: str = RANKING_MENSAL, limit: int = 50) -> list[dict]:
    rows = get_cached_ranking(ranking_type, limit)
    if rows is None:
        rows = get_ranking(db, ranking_type, limit)
        set_cached_ranking(ranking_type, limit, rows)
    return rows


def position_of(db: Session, user: User, ranking_type: str) -> int | None:
    """1-based position of one user in the full ranking (None if not ranked)."""
    if user.role not in (ROLE_STUDENT, ROLE_ADMIN) or user.access_level != ACCESS_FULL:
        return None
    column = User.xp_mensal if ranking_type == RANKING_MENSAL else User.xp
    value = user.xp_mensal if ranking_type == RANKING_MENSAL else user.xp
    ahead = (
        _eligible_users(db)
        .filter((column > value) | ((column == value) & (User.id < user.id)))
        .count()
    )
    return ahead + 1


# ---------------------------------------------------------------------------
# MONTHLY CHAMPIONS
# ---------------------------------------------------------------------------

def month_key(dt: datetime) -> str:
    return f"{dt.year:04d}-{dt.month:02d}"


def _previous_month_key(now: datetime) -> str:
    if now.month == 1:
        return f"{now.year - 1:04d}-12"
    return f"{now.year:04d}-{now.month - 1:02d}"


def month_label(key: str) -> str:
    year, month = key.split("-")
    return f"{MESES[int(month) - 1]} de {year}"


def closed_month_filter(now: datetime):
    """
    Months still open at `now`: the current one, plus the previous one until
    a full day of the new month has elapsed.
    """
    open_months = {month_key(now)}
    if now.day < 2:
        open_months.add(_previous_month_key(now))
    return lambda key: key not in open_months


def get_champions(db: Session, limit: int = 6, now: datetime | None = None) -> list[dict]:
    now = now or utcnow()
    is_closed = closed_month_filter(now)

    users = {u.id: u for u in _eligible_users(db).all()}

    per_month: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    rows = db.query(XPLedgerEntry.user_id, XPLedgerEntry.amount, XPLedgerEntry.created_at).all()
    for user_id, amount, created_at in rows:
        if user_id not in users or created_at is None:
            continue
        per_month[month_key(created_at)][user_id] += amount

    months = sorted((k for k in per_month if is_closed(k)), reverse=True)

    historico = []
    for key in months:
        if len(historico) >= limit:
            break
        totals = per_month[key]
        # Highest monthly sum wins; equal sums go to the lowest user id
        champion_id, best = min(totals.items(), key=lambda item: (-item[1], item[0]))
        if best <= 0:
            continue
        user = users[champion_id]
        historico.append({
            "mes": month_label(key),
            "mesKey": key,
            "id": user.id,
            "name": user.name,
            "level": level_for_xp(user.xp or 0),
            "xpMensal": best,
            "avatarUrl": user.avatar_url,
        })

    logger.info("[RANKING] champions months=%s returned=%s", len(per_month), len(historico))
    return historico
