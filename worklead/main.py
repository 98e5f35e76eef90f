# worklead/main.py
import asyncio
import logging
import sys

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from worklead.config import Settings
from worklead.database import Database
from worklead.engine import Engine
from worklead.scheduler import setup_scheduler
from worklead.scheduler.jobs import snapshot_all_companies


def setup_logging(is_dev: bool) -> None:
    """
    Clean production logging:
    - app logs: INFO (or DEBUG in dev)
    - library logs: WARNING+ (no query/pool/job spam)
    """
    app_level = logging.DEBUG if is_dev else logging.INFO

    logging.basicConfig(
        level=app_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    for name in (
        "sqlalchemy",
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "sqlalchemy.orm",
        "aiosqlite",
        "apscheduler",
        "aiogram",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)


async def main(argv: list[str] | None = None) -> None:
    """
    `python -m worklead.main`           run the snapshot scheduler until stopped
    `python -m worklead.main snapshot`  run one snapshot pass and exit
    """
    args = sys.argv[1:] if argv is None else argv

    settings = Settings.load()
    setup_logging(settings.is_dev)
    log = logging.getLogger("worklead")

    db = Database(settings.database_url)
    await db.init_models()
    log.info("DB initialized")

    bot = None
    if settings.telegram_bot_token:
        bot = Bot(
            token=settings.telegram_bot_token,
            default=DefaultBotProperties(parse_mode=ParseMode.HTML),
        )
        log.info("Telegram notifications enabled")

    engine = Engine.build(db, settings, bot=bot)

    scheduler = None
    try:
        if args[:1] == ["snapshot"]:
            await snapshot_all_companies(engine)
            return

        scheduler = setup_scheduler(engine)
        log.info(
            "Scheduler started: snapshots at %02d:%02d %s",
            settings.snapshot_cron_hour,
            settings.snapshot_cron_minute,
            settings.timezone,
        )
        await asyncio.Event().wait()
    except (asyncio.CancelledError, KeyboardInterrupt):
        pass
    except Exception:
        log.exception("Worklead crashed")
        raise
    finally:
        if scheduler is not None:
            try:
                scheduler.shutdown(wait=False)
            except Exception:
                log.exception("Failed to shutdown scheduler")

        try:
            await db.close()
        except Exception:
            log.exception("Failed to close DB")

        if bot is not None:
            try:
                await bot.session.close()
            except Exception:
                log.exception("Failed to close bot session")


if __name__ == "__main__":
    asyncio.run(main())
