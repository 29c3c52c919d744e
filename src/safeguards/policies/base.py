"""
Base classes for the policy interface.

This module defines the core abstractions for policies in Safeguards:
- Policy: Abstract base class that every policy implements
- FunctionPolicy: Adapter that turns a plain function into a Policy
- PolicyOutcome: The capability object a policy uses to approve or fail
- OutcomeRecorder: The runner-side state behind a PolicyOutcome

Design Principles:
    - One invocation contract: invoke(outcome, context, config)
    - invoke() may be a plain function or a coroutine function
    - A policy reports its verdict only through the outcome it was handed;
      it never sees the result record the runner builds from it
    - A policy that raises is broken, not failing. Use outcome.fail()
"""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from safeguards.schema import EvaluationContext


PolicyFunction = Callable[["PolicyOutcome", "EvaluationContext", Any], Awaitable[None] | None]


@dataclass
class OutcomeRecorder:
    """
    Mutable verdict state for one policy invocation.

    Owned by the runner for the duration of a single invocation.

    Attributes:
        approved: Set by approve()
        failed: Set by the first fail()
        message: Failure text; later fail() messages are space-joined on
    """

    approved: bool = False
    failed: bool = False
    message: str | None = None

    def approve(self) -> None:
        self.approved = True

    def fail(self, message: str) -> None:
        if self.failed:
            self.message = f"{self.message} {message}"
        else:
            self.failed = True
            self.message = message

    @property
    def called(self) -> bool:
        """Whether approve() or fail() was ever called."""
        return self.approved or self.failed


class PolicyOutcome:
    """
    The handle passed to a policy.

    Exposes exactly two operations:
        approve(): mark the check as passed (idempotent)
        fail(message): mark the check as failed; repeated calls append

    Example:
        def require_tags(outcome, context, config):
            if missing_tags(context):
                outcome.fail("Stack tags are missing")
                return
            outcome.approve()
    """

    __slots__ = ("__recorder",)

    def __init__(self, recorder: OutcomeRecorder) -> None:
        self.__recorder = recorder

    def approve(self) -> None:
        """Approve the deployment for this policy."""
        self.__recorder.approve()

    def fail(self, message: str) -> None:
        """Fail the deployment for this policy with a reason."""
        self.__recorder.fail(str(message))

    def __repr__(self) -> str:
        return "<PolicyOutcome>"


class Policy(ABC):
    """
    Abstract base class for all Safeguards policies.

    Subclasses must implement:
    - name property: The identifier used in ``custom.safeguards[].safeguard``
    - invoke(): Inspect the context and call outcome.approve() or outcome.fail()

    Example:
        class RequireDescription(Policy):
            @property
            def name(self) -> str:
                return "require-description"

            def invoke(self, outcome, context, config) -> None:
                outcome.approve()
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        The unique identifier for this policy.

        Policy names are lowercase and hyphenated, e.g. "require-dlq".
        """
        ...

    @property
    def docs(self) -> str | None:
        """Documentation reference shown next to failures. Optional."""
        return None

    @property
    def description(self) -> str:
        """Human-readable description of what the policy checks."""
        return f"Policy: {self.name}"

    @abstractmethod
    def invoke(
        self,
        outcome: PolicyOutcome,
        context: "EvaluationContext",
        config: Any,
    ) -> Awaitable[None] | None:
        """
        Evaluate the deployment.

        Args:
            outcome: Handle to approve or fail the check
            context: Read-only snapshot of the compiled deployment
            config: The policy's ``config`` payload from the declaration

        Returns:
            None, or an awaitable when the policy does asynchronous work
        """
        ...

    def __repr__(self) -> str:
        return f"<Policy: {self.name}>"


class FunctionPolicy(Policy):
    """
    Wrap a plain (or async) function as a Policy.

    Used for policies loaded from a source directory, where the module
    exposes a function rather than a Policy subclass.
    """

    def __init__(
        self,
        name: str,
        func: PolicyFunction,
        docs: str | None = None,
        description: str | None = None,
    ) -> None:
        if not callable(func):
            msg = f"Policy '{name}' must be callable, got {type(func).__name__}"
            raise TypeError(msg)
        self._name = name
        self._func = func
        self._docs = docs if docs is not None else getattr(func, "docs", None)
        self._description = description or inspect.getdoc(func)

    @property
    def name(self) -> str:
        return self._name

    @property
    def docs(self) -> str | None:
        return self._docs

    @property
    def description(self) -> str:
        return self._description or super().description

    def invoke(
        self,
        outcome: PolicyOutcome,
        context: "EvaluationContext",
        config: Any,
    ) -> Awaitable[None] | None:
        return self._func(outcome, context, config)
