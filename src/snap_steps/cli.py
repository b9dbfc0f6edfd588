import asyncio
import functools
import importlib.metadata
import logging
import sys
from pathlib import Path
from typing import Optional

import structlog
import typer
from rich.console import Console
from rich.traceback import Traceback

from .browser.exceptions import ContractViolation, ExpectationFailure, StepSkipped
from .browser.models import Locator, SelectorType
from .config import Settings
from .state import APP_STATE
from .steps.library import open_library

console = Console()
logger = structlog.get_logger(__name__)


def version_callback(value: bool):
    """Prints the application version and exits."""
    if value:
        try:
            version = importlib.metadata.version("snap-steps")
            console.print(f"snap-steps version: {version}")
        except importlib.metadata.PackageNotFoundError:
            console.print("snap-steps version: unknown (package not installed)")
        raise typer.Exit()


def setup_logging(verbose: bool):
    """
    Routes structlog through stdlib logging on stderr. ``--verbose`` turns on
    DEBUG for this package only, which includes every poll attempt.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]
    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processor=structlog.dev.ConsoleRenderer(),
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.INFO)
    logging.getLogger("snap_steps").setLevel(logging.DEBUG if verbose else logging.INFO)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def handle_exceptions(func):
    """
    Formats step outcomes for all CLI commands.

    A skipped step exits 0. A failed expectation exits 1 and names the page it
    was raised on. A contract violation is a bug in the library, so it always
    shows the traceback and exits 2.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        error_console = Console(stderr=True)
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except StepSkipped as e:
            error_console.print(f"[bold yellow]Skipped:[/bold yellow] {e}")
            raise typer.Exit(code=0)
        except ExpectationFailure as e:
            error_console.print(f"[bold red]Step failed:[/bold red] {e.message}")
            if e.url:
                error_console.print(f"[dim]Page: {e.url}[/dim]")
            raise typer.Exit(code=1)
        except ContractViolation as e:
            error_console.print(f"[bold red]Internal error:[/bold red] {e}")
            error_console.print(Traceback.from_exception(type(e), e, e.__traceback__))
            raise typer.Exit(code=2)
        except Exception as e:
            error_console.print(f"[bold red]Error:[/bold red] {e}")
            if APP_STATE.verbose_mode:
                error_console.print(
                    Traceback.from_exception(
                        type(e), e, e.__traceback__, show_locals=True
                    )
                )
            raise typer.Exit(code=1)

    return wrapper


app = typer.Typer(
    name="snap-steps",
    help="Browser step definitions for the Snap theme.",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose DEBUG logging."
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML settings file."
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the application's version and exit.",
    ),
):
    """Global options shared by every command."""
    APP_STATE.verbose_mode = verbose
    APP_STATE.config_path = config
    setup_logging(verbose)


async def _wait_visible(settings: Settings, url: str, element: str, selector: str) -> str:
    async with open_library(settings) as library:
        await library.session.visit(url)
        node = await library.general.ensure_element_is_visible(element, selector)
        return node.xpath


async def _follow_link(settings: Settings, url: str, link: str) -> str:
    async with open_library(settings) as library:
        await library.session.visit(url)
        await library.theme.click_visible_link(link)
        return library.session.current_url()


@app.command("wait-visible")
@handle_exceptions
def wait_visible(
    url: str = typer.Argument(..., help="Page to open."),
    element: str = typer.Argument(..., help="Locator expression."),
    selector: SelectorType = typer.Option(
        SelectorType.CSS, "--selector", "-s", help="Selector type of ELEMENT."
    ),
):
    """Opens URL and waits until ELEMENT is visible."""
    settings = Settings.load(APP_STATE.config_path)
    locator = Locator(selector=selector, expression=element)
    with console.status(f"Waiting for {locator.describe()}..."):
        xpath = asyncio.run(_wait_visible(settings, url, element, selector.value))
    console.print(f"[bold green]Visible:[/bold green] {locator.describe()}")
    console.print(f"[dim]{xpath}[/dim]")


@app.command("follow-link")
@handle_exceptions
def follow_link(
    url: str = typer.Argument(..., help="Page to open."),
    link: str = typer.Argument(..., help="Link text, id or title."),
):
    """Opens URL and follows the visible copy of LINK."""
    settings = Settings.load(APP_STATE.config_path)
    with console.status(f'Following "{link}"...'):
        landed = asyncio.run(_follow_link(settings, url, link))
    console.print(f"[bold green]Followed:[/bold green] {link} -> {landed}")
