"""
Script per verificare la consistenza delle permanenze (stays).

Reports lotes with more than one open stay, finished lotes that still have an
open stay and stays closing before they open. Exits with status 1 when any
violation is found, so it can run from cron or CI.

Usage:
    python scripts/check_open_stays.py [--organization-id ID]
"""

import argparse
import os
import sys

# Aggiungi il path del backend al PYTHONPATH
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lotetrace.core.database import SessionLocal
from lotetrace.models import *  # noqa: F401,F403
from lotetrace.services.production.consistency_service import find_integrity_violations


def print_report(report):
    print("=" * 80)
    print("CONTROLLO CONSISTENZA PERMANENZE")
    print("=" * 80)
    print(f"  Lotti controllati: {report.checked_lotes}")
    print(f"  Violazioni: {len(report.violations)}")
    print()

    if report.violations:
        print(f"  {'Lote':<8} {'Tipo':<26} Dettaglio")
        print("  " + "-" * 76)
        for violation in report.violations:
            print(f"  {violation.lote_id:<8} {violation.kind:<26} {violation.detail}")
        print()


def main(argv=None):
    """Funzione principale"""
    parser = argparse.ArgumentParser(description="Check stay invariants")
    parser.add_argument("--organization-id", type=int, default=None)
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        report = find_integrity_violations(db, args.organization_id)
        print_report(report)
        return 0 if report.ok else 1
    finally:
        db.close()


if __name__ == '__main__':
    sys.exit(main())
