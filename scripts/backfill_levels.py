"""
Backfill script: rebuild users.xp, users.xp_mensal and users.level from the
XP ledger (user_xp_history).

Usage:
    python scripts/backfill_levels.py            # apply
    python scripts/backfill_levels.py --dry-run  # only report
"""
import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from app.db.session import SessionLocal
from app.auth.models import User
from app.gamification import models as _gamification_models  # noqa: F401
from app.gamification.ledger import recalculate_from_ledger


def backfill_levels(dry_run: bool = False) -> int:
    """Returns how many users changed."""
    db = SessionLocal()

    try:
        users = db.query(User).order_by(User.id).all()
        print(f"Found {len(users)} users to process", flush=True)

        changed = 0
        for user in users:
            result = recalculate_from_ledger(db, user)
            if result["changed"]:
                changed += 1
                print(f"  {user.email}: {result['before']} -> {result['after']}", flush=True)

        if dry_run:
            db.rollback()
            print(f"\n[DRY RUN] {changed} user(s) would change", flush=True)
        else:
            db.commit()
            print(f"\nBackfill complete: {changed} user(s) updated", flush=True)
        return changed

    except Exception as e:
        db.rollback()
        print(f"\nError during backfill: {e}", flush=True)
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rebuild cached XP and levels from the ledger")
    parser.add_argument("--dry-run", action="store_true", help="report changes without writing them")
    args = parser.parse_args()
    backfill_levels(dry_run=args.dry_run)
