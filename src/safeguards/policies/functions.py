"""
Lambda function policies for Safeguards.

This module provides policies that inspect AWS::Lambda::Function resources:
- require-dlq: Asynchronously invoked functions need a dead letter queue
- allowed-runtimes: Functions may only use listed runtimes
- require-description: Functions need a meaningful Description
"""

from typing import Any

from safeguards.policies.base import Policy, PolicyOutcome
from safeguards.policies.cloudformation import (
    LAMBDA_FUNCTION,
    LAMBDA_PERMISSION,
    docs_url,
    function_label,
    iter_resources,
    referenced_logical_id,
)
from safeguards.schema import EvaluationContext

# Services that invoke Lambda asynchronously
ASYNC_PRINCIPALS = {
    "events.amazonaws.com",
    "iot.amazonaws.com",
    "logs.amazonaws.com",
    "s3.amazonaws.com",
    "ses.amazonaws.com",
    "sns.amazonaws.com",
}

DEFAULT_RUNTIMES = [
    "nodejs18.x",
    "nodejs20.x",
    "python3.11",
    "python3.12",
]

DEFAULT_DESCRIPTION_MIN_LENGTH = 30


class RequireDlqPolicy(Policy):
    """
    Require a dead letter queue on asynchronously invoked functions.

    A function counts as asynchronously invoked when a Lambda permission
    grants invoke rights to one of ASYNC_PRINCIPALS. Such a function must
    set DeadLetterConfig.TargetArn.
    """

    @property
    def name(self) -> str:
        return "require-dlq"

    @property
    def docs(self) -> str:
        return docs_url(self.name)

    @property
    def description(self) -> str:
        return "Asynchronously invoked functions must configure a dead letter queue"

    def invoke(self, outcome: PolicyOutcome, context: EvaluationContext, config: Any) -> None:
        async_targets = set()
        for _, permission in iter_resources(context, LAMBDA_PERMISSION):
            if permission.get("Principal") in ASYNC_PRINCIPALS:
                target = referenced_logical_id(permission.get("FunctionName"))
                if target:
                    async_targets.add(target)

        missing = []
        for logical_id, properties in iter_resources(context, LAMBDA_FUNCTION):
            if logical_id not in async_targets:
                continue
            dlq = properties.get("DeadLetterConfig") or {}
            if not dlq.get("TargetArn"):
                missing.append(function_label(logical_id, properties))

        if missing:
            outcome.fail(
                "Functions "
                + ", ".join(f'"{name}"' for name in missing)
                + " are invoked asynchronously but have no Dead Letter Queue configured."
            )
            return
        outcome.approve()


class AllowedRuntimesPolicy(Policy):
    """
    Restrict function runtimes.

    Config: a runtime identifier or a list of them. Defaults to DEFAULT_RUNTIMES.
    """

    @property
    def name(self) -> str:
        return "allowed-runtimes"

    @property
    def docs(self) -> str:
        return docs_url(self.name)

    @property
    def description(self) -> str:
        return "Functions may only use approved runtimes"

    def invoke(self, outcome: PolicyOutcome, context: EvaluationContext, config: Any) -> None:
        if isinstance(config, str):
            config = [config]
        allowed = list(config) if config else DEFAULT_RUNTIMES

        approved = True
        for logical_id, properties in iter_resources(context, LAMBDA_FUNCTION):
            runtime = properties.get("Runtime")
            # container image functions have no runtime
            if runtime is None:
                continue
            if runtime not in allowed:
                outcome.fail(
                    f'Runtime of function "{function_label(logical_id, properties)}" not in '
                    f"list of permitted runtimes: {', '.join(allowed)}"
                )
                approved = False
        if approved:
            outcome.approve()


class RequireDescriptionPolicy(Policy):
    """
    Require a Description on every function.

    Config: {"minLength": int}. Defaults to DEFAULT_DESCRIPTION_MIN_LENGTH.
    """

    @property
    def name(self) -> str:
        return "require-description"

    @property
    def docs(self) -> str:
        return docs_url(self.name)

    @property
    def description(self) -> str:
        return "Functions must have a meaningful description"

    def invoke(self, outcome: PolicyOutcome, context: EvaluationContext, config: Any) -> None:
        min_length = DEFAULT_DESCRIPTION_MIN_LENGTH
        if isinstance(config, dict) and config.get("minLength") is not None:
            try:
                min_length = int(config["minLength"])
            except (TypeError, ValueError):
                outcome.fail(f"Invalid minLength in config: {config['minLength']!r}")
                return

        problems = []
        for logical_id, properties in iter_resources(context, LAMBDA_FUNCTION):
            label = function_label(logical_id, properties)
            description = properties.get("Description")
            if not description:
                problems.append(f'Function "{label}" has no description.')
            elif len(description) < min_length:
                problems.append(
                    f'Description of function "{label}" is too short '
                    f"({len(description)} < {min_length} characters)."
                )

        if problems:
            for problem in problems:
                outcome.fail(problem)
            return
        outcome.approve()


def register_function_policies() -> None:
    """Register the Lambda function policies in the default registry."""
    from safeguards.policies.registry import default_registry

    default_registry.register(RequireDlqPolicy())
    default_registry.register(AllowedRuntimesPolicy())
    default_registry.register(RequireDescriptionPolicy())
