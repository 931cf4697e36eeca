"""
Provision the LegalFlow database.

Creates every table declared in ``legalflow.db`` and, on Postgres, installs
the recycle bin functions. ``--print-sql`` only writes the recycle bin script
to stdout so it can be pasted into an SQL editor.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy.exc import SQLAlchemyError

from legalflow.config import get_settings
from legalflow.db import PostgresDbClient
from legalflow.setup_sql import RECYCLE_BIN_SQL, apply_recycle_bin_sql


logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Provision the LegalFlow database")
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL (defaults to DATABASE_URL)",
    )
    parser.add_argument(
        "--skip-functions",
        action="store_true",
        help="Only create tables; do not install the recycle bin functions",
    )
    parser.add_argument(
        "--print-sql",
        action="store_true",
        help="Print the recycle bin SQL and exit",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO, format="%(name)s %(levelname)s %(asctime)s %(message)s"
    )

    if args.print_sql:
        print(RECYCLE_BIN_SQL)
        return 0

    database_url = args.database_url or get_settings().database_url
    if not database_url:
        logger.error("No database URL given (use --database-url or DATABASE_URL)")
        return 1

    try:
        db = PostgresDbClient(database_url)
    except SQLAlchemyError as exc:
        logger.error("Could not create tables: %s", exc)
        return 1
    logger.info("Tables created on %s", db.engine.url.render_as_string(hide_password=True))

    if args.skip_functions:
        return 0
    if db.engine.dialect.name != "postgresql":
        logger.warning(
            "%s has no plpgsql; recycle bin will use the soft delete fallback",
            db.engine.dialect.name,
        )
        return 0

    apply_recycle_bin_sql(db.engine)
    logger.info("Recycle bin functions installed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
