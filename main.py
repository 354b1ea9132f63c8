import asyncio
import os

import uvicorn

from core.config import settings
from core.logger import setup_logging, logger


async def start_api():
    from api.main import app
    config = uvicorn.Config(
        app,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
    server = uvicorn.Server(config)
    await server.serve()


async def main():
    # Setup structured logging
    setup_logging()

    logger.info("Starting practice engine API", host=settings.API_HOST, port=settings.API_PORT, env=settings.ENV)
    try:
        await start_api()
    finally:
        logger.info("Practice engine API stopped")


if __name__ == "__main__":
    if os.name == 'nt':
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutdown requested")
