"""
Aggregation of policy results into an enforcement decision.

Buckets:
    passed  = approved and not failed
    marked  = failed and not approved
    warned  = marked at warning level
    errored = marked at error level
    skipped = skipped

A result that is inconclusive (neither approved nor failed), or that both
approved and failed, lands in no bucket. The deployment is blocked when
any marked result is at error level.
"""

from dataclasses import dataclass, field

from safeguards.errors import DeploymentBlockedError
from safeguards.results import PolicyResult
from safeguards.schema import EnforcementLevel

INCONCLUSIVE_MESSAGE = "Finished inconclusively. Deployment halted."


@dataclass(frozen=True)
class RunSummary:
    """Counts for the final summary line."""

    passed: int = 0
    warned: int = 0
    errored: int = 0
    skipped: int = 0

    def __str__(self) -> str:
        return (
            f"{self.passed} passed, {self.warned} warnings, "
            f"{self.errored} errors, {self.skipped} skipped"
        )


@dataclass(frozen=True)
class DetailRecord:
    """
    One entry of the details block.

    Attributes:
        index: 1-based position among marked results
        title: Policy title
        message: Resolved message ("Failed - ...", "Warned - ...")
        docs: Documentation reference of the policy implementation
        description: Description from the policy configuration
        enforcement_level: Effective enforcement level
    """

    index: int
    title: str
    message: str
    docs: str | None
    description: str | None
    enforcement_level: EnforcementLevel


@dataclass(frozen=True)
class Evaluation:
    """
    Everything a run produced.

    Attributes:
        results: Per-policy results in declaration order
        summary: Bucket counts
        details: Detail records for marked results, in declaration order
    """

    results: list[PolicyResult] = field(default_factory=list)
    summary: RunSummary = field(default_factory=RunSummary)
    details: list[DetailRecord] = field(default_factory=list)

    @property
    def marked(self) -> list[PolicyResult]:
        return marked_results(self.results)

    @property
    def blocking(self) -> list[PolicyResult]:
        """Marked results at error level."""
        return [r for r in self.marked if r.enforcement_level == EnforcementLevel.ERROR]

    @property
    def inconclusive(self) -> list[PolicyResult]:
        return [r for r in self.results if r.inconclusive]

    @property
    def blocked(self) -> bool:
        return bool(self.blocking)

    def raise_for_status(self) -> None:
        """
        Raise if the deployment is blocked.

        Raises:
            DeploymentBlockedError: If any error-level policy failed
        """
        if self.blocked:
            raise DeploymentBlockedError(
                blocking=[r.title for r in self.blocking],
                evaluation=self,
            )


def marked_results(results: list[PolicyResult]) -> list[PolicyResult]:
    return [r for r in results if r.failed and not r.approved]


def resolve_message(result: PolicyResult) -> str:
    """Detail message for a marked result."""
    if not result.failed:
        return INCONCLUSIVE_MESSAGE
    if result.enforcement_level == EnforcementLevel.ERROR:
        return f"Failed - {result.message}"
    return f"Warned - {result.message}"


def summarize(results: list[PolicyResult]) -> RunSummary:
    marked = marked_results(results)
    return RunSummary(
        passed=sum(1 for r in results if r.approved and not r.failed),
        warned=sum(1 for r in marked if r.enforcement_level == EnforcementLevel.WARNING),
        errored=sum(1 for r in marked if r.enforcement_level == EnforcementLevel.ERROR),
        skipped=sum(1 for r in results if r.skipped),
    )


def aggregate(results: list[PolicyResult]) -> Evaluation:
    """
    Classify results and build the detail records.

    Does not raise; call Evaluation.raise_for_status() for the decision.
    """
    details = [
        DetailRecord(
            index=index,
            title=result.title,
            message=resolve_message(result),
            docs=result.policy.docs,
            description=result.policy.description,
            enforcement_level=result.enforcement_level,
        )
        for index, result in enumerate(marked_results(results), start=1)
    ]
    return Evaluation(results=list(results), summary=summarize(results), details=details)
