"""
Console reporter for Safeguards.

Renders the engine's event stream with Rich: a results header, one line
per finished policy, a Details block for marked policies, then the
summary line.

Design Principles:
    - Status at a glance: a colored status word in front of every title
    - Details only when something was marked
    - The summary line is always printed last
"""

from rich.console import Console
from rich.markup import escape

from safeguards.aggregate import DetailRecord, RunSummary
from safeguards.results import EventKind, ProgressEvent
from safeguards.schema import EnforcementLevel

ORANGE = "dark_orange"

STATUS_STYLES = {
    EventKind.PASSED: "green",
    EventKind.WARNED: ORANGE,
    EventKind.FAILED: "red",
    EventKind.SKIPPED: "bright_blue",
}

DETAILS_RULE = "Details " + "-" * 50
SUMMARY_RULE = "Summary " + "-" * 50


class ConsoleReporter:
    """
    Reporter that prints to a Rich console.

    Attributes:
        console: Target console (a new stdout console if not provided)
        verbose: Also print a line when each policy starts running
    """

    def __init__(self, console: Console | None = None, verbose: bool = False) -> None:
        self.console = console if console is not None else Console()
        self.verbose = verbose

    def on_event(self, event: ProgressEvent) -> None:
        if event.kind == EventKind.STARTED:
            self.console.print("Safeguards Processing...")
            return

        if event.kind == EventKind.RESULTS:
            self.console.print("Safeguards Results:")
            self.console.print()
            self.console.print(f"   {SUMMARY_RULE}")
            self.console.print()
            return

        title = escape(event.title or "")
        if event.kind == EventKind.RUNNING:
            if self.verbose:
                self.console.print(f"  [dim]running[/dim] - {title}")
            return

        if event.kind == EventKind.INCONCLUSIVE:
            self.console.print(f"   [yellow]inconclusive[/yellow] - {title}")
            if event.message:
                self.console.print(f"   [dim]{escape(event.message)}[/dim]")
            return

        style = STATUS_STYLES[event.kind]
        self.console.print(f"   [{style}]{event.kind.value}[/{style}]  - {title}")

    def on_details(self, details: list[DetailRecord]) -> None:
        self.console.print()
        self.console.print(f"   [yellow]{DETAILS_RULE}[/yellow]")
        self.console.print()

        for record in details:
            self.console.print(f"   {record.index}) {_styled_message(record)}")
            if record.docs:
                self.console.print(f"      [grey50]details: {escape(record.docs)}[/grey50]")
            if record.description:
                self.console.print(f"      {escape(record.description)}")
            self.console.print()

    def on_summary(self, summary: RunSummary) -> None:
        self.console.print(
            "Safeguards Summary: "
            f"[green]{summary.passed} passed[/green], "
            f"[{ORANGE}]{summary.warned} warnings[/{ORANGE}], "
            f"[red]{summary.errored} errors[/red], "
            f"[bright_blue]{summary.skipped} skipped[/bright_blue]"
        )


def _styled_message(record: DetailRecord) -> str:
    """Color a detail message by its enforcement level."""
    message = escape(record.message)
    if not record.message.startswith(("Failed - ", "Warned - ")):
        return message
    if record.enforcement_level == EnforcementLevel.ERROR:
        return f"[red]{message}[/red]"
    return f"[{ORANGE}]{message}[/{ORANGE}]"
