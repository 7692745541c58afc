# run_migrations.py (wraps alembic call with wait_for_db)
import asyncio
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

from mailsift.db import dispose_engine, wait_for_db

log = logging.getLogger("mailsift.migrations")

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"


async def wait_then_release():
    # wait for DB (will raise if auth fails)
    await wait_for_db(max_retries=8, delay=2.0)
    await dispose_engine()


def run_migrations(ini_path: Path = ALEMBIC_INI):
    asyncio.run(wait_then_release())

    # env.py drives its own event loop through the async engine
    cfg = Config(str(ini_path))
    log.info("Upgrading database to head")
    command.upgrade(cfg, "head")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_migrations()
