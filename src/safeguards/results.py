"""
Per-policy results and progress events.

PolicyResult is the classified outcome of one policy in one run.
ProgressEvent is what the runner hands to a reporter as policies finish.
"""

from dataclasses import dataclass
from enum import Enum

from safeguards.policies.loader import LoadedPolicy
from safeguards.schema import EnforcementLevel


class ResultStatus(str, Enum):
    """Terminal status of one policy."""

    PASSED = "passed"
    FAILED = "failed"
    WARNED = "warned"
    SKIPPED = "skipped"
    INCONCLUSIVE = "inconclusive"


class EventKind(str, Enum):
    """Kinds of progress events emitted during a run."""

    STARTED = "started"
    RESULTS = "results"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    WARNED = "warned"
    SKIPPED = "skipped"
    INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True)
class ProgressEvent:
    """
    A progress notice for a reporter.

    Attributes:
        kind: What happened
        title: Title of the policy concerned (None for STARTED)
        message: Optional extra text (used by INCONCLUSIVE)
    """

    kind: EventKind
    title: str | None = None
    message: str | None = None

    @property
    def terminal(self) -> bool:
        """Whether this event closes a policy's progress line."""
        return self.kind not in (EventKind.STARTED, EventKind.RESULTS, EventKind.RUNNING)


@dataclass(frozen=True)
class PolicyResult:
    """
    Outcome of one policy in one run.

    A policy that called both approve() and fail() ends up with
    approved=True and failed=True. That state is kept as-is.

    Attributes:
        policy: The loaded policy this result belongs to
        approved: approve() was called
        failed: fail() was called (or the policy raised under fault isolation)
        skipped: The stage restriction excluded the current stage
        message: Accumulated failure text, only when failed
        enforcement_level: Effective level; forced to ERROR for isolated faults
        fault: Exception summary when the policy raised under fault isolation
    """

    policy: LoadedPolicy
    approved: bool = False
    failed: bool = False
    skipped: bool = False
    message: str | None = None
    enforcement_level: EnforcementLevel = EnforcementLevel.ERROR
    fault: str | None = None

    @property
    def title(self) -> str:
        return self.policy.title

    @property
    def inconclusive(self) -> bool:
        """The policy ran but called neither approve() nor fail()."""
        return not (self.skipped or self.approved or self.failed)

    @property
    def status(self) -> ResultStatus:
        """Status used for the progress line. A failure outranks an approval."""
        if self.skipped:
            return ResultStatus.SKIPPED
        if self.failed:
            if self.enforcement_level == EnforcementLevel.ERROR:
                return ResultStatus.FAILED
            return ResultStatus.WARNED
        if self.approved:
            return ResultStatus.PASSED
        return ResultStatus.INCONCLUSIVE
