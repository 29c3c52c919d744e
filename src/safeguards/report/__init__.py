"""
Reporting module for Safeguards.

The engine reports through the Reporter protocol; this package provides
the implementations.

Output formats:
    - Console: Rich terminal output, one line per policy plus details
    - JSON: Structured output built from the returned Evaluation

Example:
    from safeguards.engine import Engine
    from safeguards.report import ConsoleReporter, generate_json_report

    engine = Engine(reporter=ConsoleReporter())
    evaluation = engine.check_service("my-service")
    print(generate_json_report(evaluation))
"""

from safeguards.report.base import NullReporter, Reporter
from safeguards.report.console import ConsoleReporter
from safeguards.report.json import build_report_dict, generate_json_report

__all__ = [
    "Reporter",
    "NullReporter",
    "ConsoleReporter",
    "build_report_dict",
    "generate_json_report",
]
