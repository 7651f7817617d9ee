import asyncio

import structlog

from connmon.app import ConnMon
from connmon.core.config import settings
from connmon.core.logging import Logger
from connmon.core.logging import configure as configure_logging

logger: Logger = structlog.get_logger()


async def main() -> None:
    logger.info(f"Starting connmon for {settings.WS_URL}...")

    connmon = ConnMon(urls={"primary": settings.WS_URL}, enable_http=True)
    await connmon.run()

    await logger.ainfo("connmon finished")


def run() -> None:
    configure_logging()
    asyncio.run(main())


if __name__ == "__main__":
    run()
