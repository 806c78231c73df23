"""Shared console output and logging setup."""

import logging

from rich.console import Console
from rich.theme import Theme


custom_theme = Theme({
    "info": "bright_cyan",
    "warning": "bright_yellow",
    "danger": "bright_red",
    "success": "bright_green",
    "primary": "bright_blue",
    "secondary": "bright_magenta",
    "accent": "bright_white",
    "subtle": "dim white"
})
console = Console(theme=custom_theme)


def make_console(**kwargs) -> Console:
    """Build a console carrying the application theme (e.g. for recording output)."""
    return Console(theme=custom_theme, **kwargs)


def configure_logging(verbose: bool = False) -> None:
    """Configure logging based on the verbose flag."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("modula").setLevel(logging.DEBUG)
    else:
        # Suppress debug/info messages by default
        logging.basicConfig(level=logging.WARNING)
