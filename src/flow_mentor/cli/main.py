# src/flow_mentor/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState for the configured user, opens the live
task/chat subscriptions and runs the console REPL until /exit or EOF.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.errors import StoreUnavailable
from ..llm.client import friendly_error_message
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(settings) -> int:
    try:
        state = create_initial_state(settings=settings)
    except (RuntimeError, ValueError) as e:
        logger.error("%s", friendly_error_message(e))
        return 2

    try:
        try:
            await state.start()
        except StoreUnavailable as e:
            logger.error("Could not open the live views: %s", e)
            return 1
        await run_console_loop(state)
        return 0
    finally:
        await state.close()


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=getattr(settings, "data_dir", ".local/flow"), console_level=console_level)

    # keep noisy libs readable
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    logger.info("Starting %s...", getattr(settings, "app_name", "flow-mentor"))

    try:
        code = asyncio.run(_run(settings))
    except KeyboardInterrupt:
        code = 130
    logger.info("Bye.")
    raise SystemExit(code)


if __name__ == "__main__":
    main()
