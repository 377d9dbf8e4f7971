"""Interactive prompt interface.

The core asks the user through three primitives (table, free-text input,
plain text). ConsolePrompt renders them with rich; tests script them.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import SessionSummary


class Prompt(ABC):
    """Present choices, get an answer."""

    @abstractmethod
    def display_table(self, columns: Sequence[str], rows: Sequence[Sequence[str]], title: str = "") -> None:
        pass

    @abstractmethod
    def request_input(self, text: str) -> str:
        pass

    @abstractmethod
    def display_text(self, text: str) -> None:
        pass

    def display_sessions(self, summaries: Sequence[SessionSummary], title: str = "") -> None:
        """Show session summaries as a table."""
        self.display_table(SessionSummary.COLUMNS, [s.as_row() for s in summaries], title=title)


class ConsolePrompt(Prompt):
    """Terminal prompt backed by a rich Console."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def display_table(self, columns: Sequence[str], rows: Sequence[Sequence[str]], title: str = "") -> None:
        table = Table(title=title or None)
        for column in columns:
            table.add_column(column)
        for row in rows:
            # cells are plain text: names and folders may contain brackets
            table.add_row(*[Text(str(cell)) for cell in row])
        self.console.print(table)

    def request_input(self, text: str) -> str:
        # answer keys such as [y/n] must reach the user verbatim
        return self.console.input(text, markup=False).strip()

    def display_text(self, text: str) -> None:
        # markup off: file paths may contain brackets
        self.console.print(text, markup=False, highlight=False)


def ask_letter(prompt: Prompt, question: str, valid: str, default: str) -> str:
    """Ask for a single-letter answer (case-insensitive).

    Empty or unrecognised answers return `default`, which callers set to the
    least destructive choice.
    """
    answer = prompt.request_input(question).strip().lower()
    if not answer or answer[0] not in valid.lower():
        return default
    return answer[0]


def ask_option(prompt: Prompt, question: str, options: Sequence[int], default: int) -> int:
    """Ask for a numeric option; empty/unparsable/unknown answers return `default`."""
    answer = prompt.request_input(question).strip()
    try:
        value = int(answer)
    except ValueError:
        return default
    return value if value in options else default
