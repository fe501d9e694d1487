from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import load_settings

from src.visitor_management.visitor_management.database.bootstrap import (
    apply_schema,
    apply_seed_sql,
    ensure_default_users,
)
from src.visitor_management.visitor_management.logging_setup import setup_logging


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Seed dropdown options, complaint setup and default accounts.")
    parser.add_argument("--with-schema", action="store_true", help="apply database/schema.sql first")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = load_settings()
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    db_config = dict(settings.DB_CONFIG)

    if args.with_schema:
        apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
    created = ensure_default_users(db_config)

    print(
        "OK: Seeded database -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(new users: {', '.join(created) or 'none'})"
    )


if __name__ == "__main__":
    main()
