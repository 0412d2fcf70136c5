import logging

import sqlalchemy as sa

from app.core.logging import configure_logging
from app.db.session import SessionLocal

logger = logging.getLogger("app.scripts.report_unstamped_matches")


def main():
    configure_logging()
    db = SessionLocal()
    try:
        rows = db.execute(sa.text("""
            SELECT m.id::text AS id, m.team_a_score, m.team_b_score, m.updated_at
            FROM matches m
            WHERE m.verified_result = true
              AND m.stats_applied_at IS NULL
            ORDER BY m.updated_at
        """)).mappings().all()

        for r in rows:
            logger.warning(
                "match %s verified %s-%s at %s without applied stats",
                r["id"], r["team_a_score"], r["team_b_score"], r["updated_at"],
            )
        print(f"ok: {len(rows)} verified matches without applied stats")
    finally:
        db.close()


if __name__ == "__main__":
    main()
