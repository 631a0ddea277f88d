from pathlib import Path
from typing import Any

import psycopg

_SCHEMA_PATH = Path(__file__).parent / "schema.sql"


def load_schema(path: Path | None = None) -> str:
    """Load the DDL script. Defaults to the bundled schema.sql."""
    return (path or _SCHEMA_PATH).read_text(encoding="utf-8")


def apply_schema(conn: psycopg.Connection[Any], path: Path | None = None) -> None:
    """Create all tables used by the registry. Safe to run repeatedly."""
    conn.execute(load_schema(path))
    conn.commit()
