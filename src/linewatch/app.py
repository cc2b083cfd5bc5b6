from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from nicegui import app, ui

from linewatch.data.db import Db
from linewatch.data.repository import Repository
from linewatch.logging_conf import configure_logging
from linewatch.settings import Settings, default_db_path
from linewatch.ui.pages import register_pages

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Monitor de líneas de producción")
    parser.add_argument("--host", type=str, default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--planta", type=str, default="Planta", help="Nombre de la planta")
    parser.add_argument("--db", type=Path, default=None, help="Ruta de la base SQLite")
    parser.add_argument("--log-level", type=str, default="INFO")
    return parser


def main() -> None:
    args = build_arg_parser().parse_args()
    settings = Settings(
        db_path=args.db or default_db_path(),
        host=args.host,
        port=args.port,
        plant_name=args.planta,
        log_level=args.log_level,
    )
    configure_logging(settings.log_level)

    db = Db(settings.db_path)
    db.ensure_schema()
    logger.info("Base de datos: %s", settings.db_path)

    repo = Repository(db)
    register_pages(repo, plant_name=settings.plant_name)

    if sys.platform == "win32":
        @app.on_startup
        async def _silence_windows_connection_reset() -> None:
            loop = asyncio.get_running_loop()

            def _handler(loop: asyncio.AbstractEventLoop, context: dict) -> None:
                exc = context.get("exception")
                if isinstance(exc, ConnectionResetError) and getattr(exc, "winerror", None) == 10054:
                    return
                loop.default_exception_handler(context)

            loop.set_exception_handler(_handler)

    ui.run(host=settings.host, port=settings.port, title=settings.plant_name, reload=False)


if __name__ in {"__main__", "__mp_main__"}:
    main()
