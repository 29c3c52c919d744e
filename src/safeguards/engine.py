"""
Execution Engine for Safeguards.

The Engine evaluates declared policies against a compiled deployment.
It coordinates between:
- Policy Loader: Resolves declared records into executable policies
- Context Builder: Produces the read-only snapshot policies inspect
- Policy Runner: Runs every policy concurrently and classifies outcomes
- Aggregator: Turns results into counts, details and a block decision

Execution Flow:
    1. Nothing declared: return an empty evaluation, report nothing
    2. Report STARTED, resolve every policy (any failure aborts here)
    3. Build the evaluation context, report RESULTS
    4. Launch every policy at once on its own copy of the context; each
       finished policy's events are reported as it completes
    5. Join, aggregate, report details (if any) and the summary
    6. Raise DeploymentBlockedError if an error-level policy failed

Design Principles:
    - No policy waits on another; results still come back in declaration order
    - A policy that raises aborts the run unless fault isolation is on
    - The engine owns no global state: everything is in the returned Evaluation
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from safeguards.aggregate import Evaluation, aggregate
from safeguards.artifacts import load_artifacts
from safeguards.context import build_context, provider_from_declaration
from safeguards.policies.base import OutcomeRecorder, PolicyOutcome
from safeguards.policies.loader import LoadedPolicy, load_policies
from safeguards.policies.registry import PolicyRegistry, default_registry
from safeguards.report.base import NullReporter, Reporter
from safeguards.results import EventKind, PolicyResult, ProgressEvent, ResultStatus
from safeguards.schema import (
    EnforcementLevel,
    EngineConfig,
    EvaluationContext,
    PolicyConfig,
    ProviderInfo,
    find_declaration,
    load_declaration,
    policy_configs_from_declaration,
)

logger = logging.getLogger(__name__)

INCONCLUSIVE_NOTICE = (
    'Safeguard Policy "{title}" finished running, but did not explicitly approve '
    "the deployment. This is likely a problem in the policy itself. If this problem "
    "persists, contact the policy author."
)

_TERMINAL_EVENTS = {
    ResultStatus.PASSED: EventKind.PASSED,
    ResultStatus.FAILED: EventKind.FAILED,
    ResultStatus.WARNED: EventKind.WARNED,
    ResultStatus.SKIPPED: EventKind.SKIPPED,
    ResultStatus.INCONCLUSIVE: EventKind.INCONCLUSIVE,
}


class PolicyRunner:
    """
    Runs loaded policies concurrently against one context.

    Attributes:
        isolate_faults: Record a raising policy as an error-level failure
            instead of propagating the exception
    """

    def __init__(self, isolate_faults: bool = False) -> None:
        self.isolate_faults = isolate_faults

    async def run(
        self,
        policies: list[LoadedPolicy],
        context: EvaluationContext,
        on_event: Callable[[ProgressEvent], None] | None = None,
    ) -> list[PolicyResult]:
        """
        Run every policy and join on all of them.

        Args:
            policies: Loaded policies in declaration order
            context: Shared read-only snapshot
            on_event: Receives each policy's events when that policy finishes

        Returns:
            One PolicyResult per policy, in declaration order

        Raises:
            Exception: Whatever a policy raised, unmodified (unless isolate_faults)
        """
        tasks = [
            asyncio.create_task(self._evaluate(index, loaded, context))
            for index, loaded in enumerate(policies)
        ]
        results: list[PolicyResult | None] = [None] * len(tasks)

        try:
            for finished in asyncio.as_completed(tasks):
                index, result, events = await finished
                results[index] = result
                if on_event is not None:
                    for event in events:
                        on_event(event)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return [r for r in results if r is not None]

    async def _evaluate(
        self,
        index: int,
        loaded: LoadedPolicy,
        context: EvaluationContext,
    ) -> tuple[int, PolicyResult, list[ProgressEvent]]:
        config = loaded.config
        events = [ProgressEvent(EventKind.RUNNING, loaded.title)]

        if not config.applies_to(context.stage):
            logger.debug("Skipping policy %s for stage %s", loaded.title, context.stage)
            result = PolicyResult(
                policy=loaded,
                skipped=True,
                enforcement_level=config.enforcement_level,
            )
            events.append(ProgressEvent(EventKind.SKIPPED, loaded.title))
            return index, result, events

        # each policy sees its own copy; in-place edits stay local
        context = context.model_copy(deep=True)
        recorder = OutcomeRecorder()
        level = config.enforcement_level
        fault = None

        logger.debug("Running policy %s (%s)", loaded.title, loaded.name)
        try:
            returned = loaded.policy.invoke(PolicyOutcome(recorder), context, config.config)
            if inspect.isawaitable(returned):
                await returned
        except Exception as e:
            if not self.isolate_faults:
                raise
            fault = f"{type(e).__name__}: {e}"
            logger.warning("Policy %s raised %s", loaded.title, fault, exc_info=True)
            recorder = OutcomeRecorder()
            recorder.fail(f"Policy raised {fault}")
            level = EnforcementLevel.ERROR

        result = PolicyResult(
            policy=loaded,
            approved=recorder.approved,
            failed=recorder.failed,
            message=recorder.message if recorder.failed else None,
            enforcement_level=level,
            fault=fault,
        )

        if result.inconclusive:
            notice = INCONCLUSIVE_NOTICE.format(title=loaded.title)
            logger.warning(notice)
            events.append(ProgressEvent(EventKind.INCONCLUSIVE, loaded.title, notice))
        else:
            events.append(ProgressEvent(_TERMINAL_EVENTS[result.status], loaded.title))
        return index, result, events


class Engine:
    """
    Main entry point for evaluating policies.

    Usage:
        engine = Engine(reporter=ConsoleReporter())
        evaluation = engine.run(configs, declaration, artifacts, provider)
        print(evaluation.summary)

    Attributes:
        registry: Built-in policy catalog
        reporter: Receives events, details and the summary
        config: Run-level options
    """

    def __init__(
        self,
        registry: PolicyRegistry | None = None,
        reporter: Reporter | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.registry = registry if registry is not None else default_registry
        self.reporter = reporter if reporter is not None else NullReporter()
        self.config = config if config is not None else EngineConfig()

    def run(
        self,
        configs: list[PolicyConfig],
        declaration: dict[str, Any],
        artifacts: dict[str, Any],
        provider: ProviderInfo,
        tool_version: str = "",
        base_dir: Path | str = ".",
    ) -> Evaluation:
        """Synchronous wrapper around run_async()."""
        return asyncio.run(
            self.run_async(configs, declaration, artifacts, provider, tool_version, base_dir)
        )

    async def run_async(
        self,
        configs: list[PolicyConfig],
        declaration: dict[str, Any],
        artifacts: dict[str, Any],
        provider: ProviderInfo,
        tool_version: str = "",
        base_dir: Path | str = ".",
    ) -> Evaluation:
        """
        Evaluate declared policies against already-loaded artifacts.

        Args:
            configs: Declared policy records, in order
            declaration: The service declaration
            artifacts: Artifact file name -> parsed content
            provider: Provider metadata including the current stage
            tool_version: Version of the orchestrating framework
            base_dir: Directory relative policy ``path`` overrides resolve against

        Returns:
            The Evaluation (empty when nothing is declared)

        Raises:
            PolicyNotFoundError / PolicySourceError: A policy failed to resolve
            DeploymentBlockedError: An error-level policy failed
            Exception: A policy raised (unless isolate_faults)
        """
        if not configs:
            return Evaluation()

        self.reporter.on_event(ProgressEvent(EventKind.STARTED))
        policies = load_policies(configs, registry=self.registry, base_dir=base_dir)

        context = build_context(
            declaration,
            artifacts,
            provider,
            tool_version=tool_version,
            strip_keys=self.config.strip_keys,
        )
        self.reporter.on_event(ProgressEvent(EventKind.RESULTS))

        runner = PolicyRunner(isolate_faults=self.config.isolate_faults)
        results = await runner.run(policies, context, on_event=self.reporter.on_event)

        evaluation = aggregate(results)
        logger.debug("Policy run finished: %s", evaluation.summary)

        if evaluation.details:
            self.reporter.on_details(evaluation.details)
        self.reporter.on_summary(evaluation.summary)
        evaluation.raise_for_status()
        return evaluation

    def check_service(
        self,
        service_dir: Path | str,
        provider_name: str | None = None,
        stage: str | None = None,
        region: str | None = None,
        tool_version: str = "",
    ) -> Evaluation:
        """
        Evaluate a packaged service straight from disk.

        Reads the declaration in ``service_dir``, and, if it declares any
        policies, the artifacts in ``<service_dir>/<artifacts_dir>``.

        Raises:
            DeclarationError: No readable declaration
            ArtifactsNotFoundError / ArtifactParseError: Bad artifacts directory
            plus everything run() raises
        """
        service_dir = Path(service_dir)
        declaration = load_declaration(find_declaration(service_dir))
        configs = policy_configs_from_declaration(declaration)
        if not configs:
            logger.debug("No policies declared in %s", service_dir)
            return Evaluation()

        artifacts = load_artifacts(service_dir / self.config.artifacts_dir)
        provider = provider_from_declaration(
            declaration, name=provider_name, stage=stage, region=region
        )
        return self.run(
            configs,
            declaration,
            artifacts,
            provider,
            tool_version=tool_version,
            base_dir=service_dir,
        )
