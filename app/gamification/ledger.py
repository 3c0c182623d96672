"""
XP ledger writer.

Every XP change goes through here so that the ledger (user_xp_history) and
the cached totals on users (xp, xp_mensal, level) move inside the same unit
of work. Nothing in this module commits: the caller owns the transaction.

Core rules:
  - append() is an atomic insert-if-not-exists on (user, source, source_id, kind)
  - cached xp / xp_mensal are clamped at 0
  - level is recomputed after every mutation
"""
from datetime import datetime, timezone
import logging

from sqlalchemy import func, insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.dialects import postgresql, sqlite

from app.auth.models import User
from app.core.errors import NotFoundError
from app.gamification.levels import level_for_xp
from app.gamification.models import XPLedgerEntry, utcnow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CACHE helpers
# ---------------------------------------------------------------------------

def _get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("Usuário não encontrado")
    return user


def sync_user_level(user: User) -> bool:
    """Recompute level from xp. Returns True if it changed."""
    correct = level_for_xp(user.xp or 0)
    if user.level != correct:
        logger.info("[LEVEL] user=%s %s -> %s (xp=%s)", user.id, user.level, correct, user.xp)
        user.level = correct
        return True
    return False


def apply_delta(user: User, amount: int) -> None:
    """Apply a signed amount to the cached totals, clamped at 0."""
    user.xp = max(0, (user.xp or 0) + amount)
    user.xp_mensal = max(0, (user.xp_mensal or 0) + amount)
    sync_user_level(user)


def revert_user_xp(user: User, amount: int) -> tuple[int, int]:
    """Take `amount` back from a user. Returns (old_xp, new_xp)."""
    old_xp = user.xp or 0
    apply_delta(user, -abs(amount))
    logger.info("[LEDGER] reverted user=%s amount=%s xp %s -> %s", user.id, amount, old_xp, user.xp)
    return old_xp, user.xp


# ---------------------------------------------------------------------------
# APPEND
# ---------------------------------------------------------------------------

def _insert_ignore(db: Session, values: dict) -> bool:
    """INSERT ... ON CONFLICT DO NOTHING. Returns True if a row was written."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(XPLedgerEntry).values(**values).on_conflict_do_nothing(
            constraint="uq_xp_award"
        )
        return db.execute(stmt).rowcount == 1
    if dialect == "sqlite":
        stmt = sqlite.insert(XPLedgerEntry).values(**values).on_conflict_do_nothing(
            index_elements=["user_id", "source", "source_id", "kind"]
        )
        return db.execute(stmt).rowcount == 1

    # Other backends: rely on the unique constraint inside a savepoint
    try:
        with db.begin_nested():
            db.execute(insert(XPLedgerEntry).values(**values))
        return True
    except IntegrityError:
        return False


def append(
    db: Session,
    user_id: str,
    source: str,
    source_id,
    amount: int,
    description: str | None = None,
    kind: str = "award",
    created_at: datetime | None = None,
) -> XPLedgerEntry | None:
    """
    Write one ledger entry and update the user's cached totals.

    Returns the new entry, or None when an entry with the same
    (user, source, source_id, kind) already exists.
    """
    if amount == 0:
        raise ValueError("XP amount must be non-zero")

    user = _get_user(db, user_id)
    values = {
        "user_id": user_id,
        "source": source,
        "source_id": str(source_id),
        "kind": kind,
        "amount": amount,
        "description": description,
        "created_at": created_at or utcnow(),
    }

    if not _insert_ignore(db, values):
        logger.info("[LEDGER] duplicate skipped user=%s source=%s source_id=%s kind=%s",
                    user_id, source, source_id, kind)
        return None

    apply_delta(user, amount)
    db.flush()

    logger.info("[LEDGER] user=%s source=%s source_id=%s kind=%s amount=%+d xp=%s level=%s",
                user_id, source, source_id, kind, amount, user.xp, user.level)

    return (
        db.query(XPLedgerEntry)
        .filter_by(user_id=user_id, source=source, source_id=str(source_id), kind=kind)
        .one()
    )


# ---------------------------------------------------------------------------
# QUERIES
# ---------------------------------------------------------------------------

def sum_for_source(db: Session, user_id: str, source: str, source_id, kinds=None) -> int:
    q = db.query(func.coalesce(func.sum(XPLedgerEntry.amount), 0)).filter(
        XPLedgerEntry.user_id == user_id,
        XPLedgerEntry.source == source,
        XPLedgerEntry.source_id == str(source_id),
    )
    if kinds:
        q = q.filter(XPLedgerEntry.kind.in_(list(kinds)))
    return int(q.scalar() or 0)


def remove_entries(db: Session, source: str, source_ids, kinds=None, user_id: str | None = None) -> int:
    """Delete ledger rows for a reversal. Returns how many rows went away."""
    ids = [str(s) for s in source_ids]
    if not ids:
        return 0
    q = db.query(XPLedgerEntry).filter(
        XPLedgerEntry.source == source,
        XPLedgerEntry.source_id.in_(ids),
    )
    if kinds:
        q = q.filter(XPLedgerEntry.kind.in_(list(kinds)))
    if user_id:
        q = q.filter(XPLedgerEntry.user_id == user_id)
    removed = q.delete(synchronize_session=False)
    logger.info("[LEDGER] removed %s entries source=%s ids=%s kinds=%s", removed, source, ids, kinds)
    return removed


def history_for_user(db: Session, user_id: str, limit: int = 100) -> list[XPLedgerEntry]:
    return (
        db.query(XPLedgerEntry)
        .filter(XPLedgerEntry.user_id == user_id)
        .order_by(XPLedgerEntry.created_at.desc(), XPLedgerEntry.id.desc())
        .limit(limit)
        .all()
    )


# ---------------------------------------------------------------------------
# RECALCULATION (repair tools)
# ---------------------------------------------------------------------------

def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


def entries_in_month(db: Session, user_id: str, year: int, month: int) -> list[XPLedgerEntry]:
    start, end = month_bounds(year, month)
    return (
        db.query(XPLedgerEntry)
        .filter(
            XPLedgerEntry.user_id == user_id,
            XPLedgerEntry.created_at >= start,
            XPLedgerEntry.created_at < end,
        )
        .order_by(XPLedgerEntry.created_at.asc())
        .all()
    )


def recalculate_monthly_xp(
    db: Session, user: User, year: int, month: int, dry_run: bool = False
) -> dict:
    """Rebuild xp_mensal from the entries of the given month."""
    entries = entries_in_month(db, user.id, year, month)
    previous = user.xp_mensal or 0
    new_value = max(0, sum(e.amount for e in entries))
    if not dry_run:
        user.xp_mensal = new_value
    logger.info("[LEDGER] monthly recalc user=%s %04d-%02d %s -> %s dry_run=%s",
                user.id, year, month, previous, new_value, dry_run)
    return {
        "dryRun": dry_run,
        "mes": month,
        "ano": year,
        "xpMensalAnterior": previous,
        "xpMensalNovo": new_value,
        "entradasContadas": [e.to_dict() for e in entries],
    }


def recalculate_from_ledger(db: Session, user: User, now: datetime | None = None) -> dict:
    """Rebuild xp, xp_mensal and level for one user from the ledger."""
    now = now or utcnow()
    total = (
        db.query(func.coalesce(func.sum(XPLedgerEntry.amount), 0))
        .filter(XPLedgerEntry.user_id == user.id)
        .scalar()
    ) or 0
    start, end = month_bounds(now.year, now.month)
    monthly = (
        db.query(func.coalesce(func.sum(XPLedgerEntry.amount), 0))
        .filter(
            XPLedgerEntry.user_id == user.id,
            XPLedgerEntry.created_at >= start,
            XPLedgerEntry.created_at < end,
        )
        .scalar()
    ) or 0

    before = {"xp": user.xp, "xp_mensal": user.xp_mensal, "level": user.level}
    user.xp = max(0, int(total))
    user.xp_mensal = max(0, int(monthly))
    sync_user_level(user)
    after = {"xp": user.xp, "xp_mensal": user.xp_mensal, "level": user.level}
    return {"user_id": user.id, "before": before, "after": after, "changed": before != after}
