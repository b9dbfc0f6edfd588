import json
from contextlib import asynccontextmanager

import structlog

from .session import BaseSession

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def borrowed_window(session: BaseSession, url: str, name: str):
    """
    Opens ``url`` in a new window named ``name`` and focuses it for the body
    of the ``async with`` block.

    On exit the borrowed window is closed and focus goes back to the window
    that was current on entry, whether or not the block raised.
    """
    main_window = await session.get_window_name()
    log = logger.bind(main_window=main_window, borrowed_window=name)
    await session.execute_script(f"window.open({json.dumps(url)}, {json.dumps(name)})")
    switched = False
    try:
        await session.switch_to_window(name)
        switched = True
        log.debug("Borrowed window focused.")
        yield session
    finally:
        try:
            if switched:
                await session.execute_script("window.close()")
        finally:
            await session.switch_to_window(main_window)
            log.debug("Focus restored to main window.")
