"""
Reporter interface.

The engine never prints. It hands progress events, detail records and the
summary to a Reporter, which decides how (or whether) to render them.
"""

from typing import Protocol

from safeguards.aggregate import DetailRecord, RunSummary
from safeguards.results import ProgressEvent


class Reporter(Protocol):
    """Receives engine output, in order."""

    def on_event(self, event: ProgressEvent) -> None: ...

    def on_details(self, details: list[DetailRecord]) -> None: ...

    def on_summary(self, summary: RunSummary) -> None: ...


class NullReporter:
    """Discards everything."""

    def on_event(self, event: ProgressEvent) -> None:
        pass

    def on_details(self, details: list[DetailRecord]) -> None:
        pass

    def on_summary(self, summary: RunSummary) -> None:
        pass
