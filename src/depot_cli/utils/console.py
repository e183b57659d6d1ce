"""Console utility functions for formatting and output."""

import click
from typing import Optional, Any

# Rich library imports with fallbacks
try:
    from rich.console import Console
    from rich.table import Table
    RICH_AVAILABLE = True
except ImportError:
    RICH_AVAILABLE = False
    Console = Any
    Table = Any

# Colorama imports for fallback
try:
    from colorama import Fore, Style, init
    init(autoreset=True)
    COLORAMA_AVAILABLE = True
except ImportError:
    COLORAMA_AVAILABLE = False
    Fore = None
    Style = None


# Status symbols for consistent iconography
STATUS_SYMBOLS = {
    'success': '✓',
    'running': '•',
    'download': '↓',
    'archive': '•',
    'link': '→',
    'info': '•',
    'warning': '⚠',
    'error': '✗',
    'check': '✓',
    'list': '•',
}


def _get_console() -> Optional[Any]:
    """Get Rich console instance if available."""
    if RICH_AVAILABLE:
        try:
            return Console()
        except Exception:
            pass
    return None


def _rich_echo(message: str, color: str = "white", style: str = None, bold: bool = False, symbol: str = None):
    """Echo message with Rich formatting or colorama fallback."""
    if style is not None:
        color = style

    if symbol and symbol in STATUS_SYMBOLS:
        message = f"{STATUS_SYMBOLS[symbol]} {message}"

    console = _get_console()
    if console:
        try:
            style_str = f"bold {color}" if bold else color
            console.print(message, style=style_str, markup=False, highlight=False)
            return
        except Exception:
            pass

    # Colorama fallback
    if COLORAMA_AVAILABLE and Fore:
        color_map = {
            'red': Fore.RED,
            'green': Fore.GREEN,
            'yellow': Fore.YELLOW,
            'blue': Fore.BLUE,
            'cyan': Fore.CYAN,
            'white': Fore.WHITE,
            'magenta': Fore.MAGENTA,
            'muted': Fore.WHITE,
        }
        color_code = color_map.get(color, Fore.WHITE)
        style_code = Style.BRIGHT if bold else ""
        click.echo(f"{color_code}{style_code}{message}{Style.RESET_ALL}")
    else:
        click.echo(message)


def _rich_success(message: str, symbol: str = None):
    """Display success message with green color and bold styling."""
    _rich_echo(message, color="green", symbol=symbol, bold=True)


def _rich_error(message: str, symbol: str = None):
    """Display error message with red color."""
    _rich_echo(message, color="red", symbol=symbol)


def _rich_warning(message: str, symbol: str = None):
    """Display warning message with yellow color."""
    _rich_echo(message, color="yellow", symbol=symbol)


def _rich_info(message: str, symbol: str = None):
    """Display info message with blue color."""
    _rich_echo(message, color="blue", symbol=symbol)


def _create_table(title: str, columns: list, rows: list) -> Optional[Any]:
    """Create a Rich table from column headers and row tuples."""
    if not RICH_AVAILABLE:
        return None

    try:
        table = Table(title=title, show_header=True, header_style="bold cyan")
        for index, column in enumerate(columns):
            table.add_column(column, style="bold white" if index == 0 else "white")
        for row in rows:
            table.add_row(*[str(value) for value in row])
        return table
    except Exception:
        return None
