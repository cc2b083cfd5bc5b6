from __future__ import annotations

import sqlite3
from pathlib import Path


class Db:
    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(self.path)
        con.row_factory = sqlite3.Row
        con.execute("PRAGMA foreign_keys=ON;")
        return con

    def ensure_schema(self) -> None:
        with self.connect() as con:
            con.execute("PRAGMA journal_mode=WAL;")

            con.executescript(
                """
                CREATE TABLE IF NOT EXISTS app_config (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS production_plan (
                    plan_id TEXT PRIMARY KEY,
                    line TEXT NOT NULL,
                    product_name TEXT NOT NULL,
                    specification TEXT NOT NULL DEFAULT '',
                    product_code TEXT NOT NULL DEFAULT '',
                    lot_number TEXT NOT NULL DEFAULT '',
                    planned_quantity INTEGER NOT NULL CHECK (planned_quantity >= 0),
                    week_start TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_production_plan_week
                    ON production_plan(week_start, line);

                CREATE TABLE IF NOT EXISTS production_check (
                    check_id TEXT PRIMARY KEY,
                    plan_id TEXT NOT NULL REFERENCES production_plan(plan_id) ON DELETE CASCADE,
                    check_time TEXT NOT NULL,
                    produced_quantity INTEGER NOT NULL CHECK (produced_quantity >= 0),
                    created_at TEXT NOT NULL,
                    created_by TEXT NOT NULL DEFAULT ''
                );

                CREATE INDEX IF NOT EXISTS idx_production_check_plan
                    ON production_check(plan_id, created_at);
                """
            )
