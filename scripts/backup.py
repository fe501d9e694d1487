"""Backup the configured database with ``mysqldump``.

Needs the MySQL client tools on PATH.
"""

from __future__ import annotations

import os
import subprocess
import sys
from datetime import datetime
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import load_settings


def main() -> None:
    load_dotenv(override=False)
    settings = load_settings()
    db = settings.DB_CONFIG

    out_dir = REPO_ROOT / "backups"
    out_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    out_file = out_dir / f"{db['database']}_{ts}.sql"

    cmd = [
        "mysqldump",
        f"-h{db['host']}",
        f"-P{db.get('port', 3306)}",
        f"-u{db['user']}",
        "--single-transaction",
        "--routines",
        db["database"],
    ]
    # Password via env so it does not show up in the process list.
    env = {**os.environ, "MYSQL_PWD": str(db.get("password", ""))}

    try:
        with out_file.open("wb") as f:
            subprocess.run(cmd, stdout=f, stderr=subprocess.PIPE, check=True, env=env)
    except FileNotFoundError:
        out_file.unlink(missing_ok=True)
        raise SystemExit("mysqldump not found. Install the MySQL client tools first.")
    except subprocess.CalledProcessError as exc:
        out_file.unlink(missing_ok=True)
        raise SystemExit(f"mysqldump failed: {exc.stderr.decode(errors='replace').strip()}")
    print(f"OK: Backup created: {out_file}")


if __name__ == "__main__":
    main()
