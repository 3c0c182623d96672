"""
Recalculate one user's monthly XP (xp_mensal) from the ledger entries of a
given month. Dry run unless --apply is passed.

Usage:
    python scripts/limpar_xp_mensal.py aluno@example.com 9 2026
    python scripts/limpar_xp_mensal.py aluno@example.com 9 2026 --apply
"""
import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from app.db.session import SessionLocal
from app.auth import models as _auth_models  # noqa: F401
from app.gamification import models as _gamification_models  # noqa: F401
from app.admin.service import clean_monthly_xp


def main() -> int:
    parser = argparse.ArgumentParser(description="Recalculate xp_mensal for one user")
    parser.add_argument("email")
    parser.add_argument("mes", type=int)
    parser.add_argument("ano", type=int)
    parser.add_argument("--apply", action="store_true", help="write the new value (default is dry run)")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        result = clean_monthly_xp(db, args.email, args.mes, args.ano, dry_run=not args.apply)
    finally:
        db.close()

    print(f"User: {result['user']['email']} ({result['user']['id']})", flush=True)
    print(f"Entries counted: {result['totalEntradas']}", flush=True)
    for entry in result["entradasContadas"]:
        print(f"  {entry['created_at']} {entry['source']}:{entry['source_id']} {entry['amount']:+d}", flush=True)
    print(result["message"], flush=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
