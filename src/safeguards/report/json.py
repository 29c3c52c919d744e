"""
JSON report generator for Safeguards.

Serializes an Evaluation for programmatic consumption.

Design Principles:
    - Complete data: every result, including skipped and inconclusive ones
    - Consistent schema: same keys whether or not anything failed
    - Human-readable keys: descriptive snake_case names
    - ISO timestamps: standard datetime format
"""

import json
from datetime import UTC, datetime
from typing import Any

from safeguards.aggregate import Evaluation

REPORT_VERSION = "1.0"


def generate_json_report(evaluation: Evaluation, indent: int = 2) -> str:
    """
    Generate a JSON report for an evaluation.

    Args:
        evaluation: Output of an engine run
        indent: JSON indentation level (default: 2)

    Returns:
        JSON string with the full report
    """
    return json.dumps(build_report_dict(evaluation), indent=indent, default=str)


def build_report_dict(evaluation: Evaluation) -> dict[str, Any]:
    """
    Build a report dictionary for an evaluation.

    Returns:
        Dictionary with summary, decision, per-policy results and details
    """
    summary = evaluation.summary
    return {
        "report_version": REPORT_VERSION,
        "generated_at": datetime.now(UTC).isoformat(),
        "blocked": evaluation.blocked,
        "summary": {
            "passed": summary.passed,
            "warned": summary.warned,
            "errored": summary.errored,
            "skipped": summary.skipped,
            "text": str(summary),
        },
        "results": [
            {
                "name": result.policy.name,
                "title": result.title,
                "status": result.status.value,
                "enforcement_level": result.enforcement_level.value,
                "approved": result.approved,
                "failed": result.failed,
                "skipped": result.skipped,
                "message": result.message,
                "fault": result.fault,
                "source": result.policy.source,
            }
            for result in evaluation.results
        ],
        "details": [
            {
                "index": record.index,
                "title": record.title,
                "message": record.message,
                "docs": record.docs,
                "description": record.description,
                "enforcement_level": record.enforcement_level.value,
            }
            for record in evaluation.details
        ],
    }
