"""
Deployment target policies for Safeguards.

These check where and with what the service is being deployed, rather
than what is in the template:
- allowed-stages: The current stage must be listed
- allowed-regions: The current region must be listed
- framework-version: The framework version must satisfy a requirement
"""

import re
from typing import Any

from safeguards.policies.base import Policy, PolicyOutcome
from safeguards.policies.cloudformation import docs_url
from safeguards.schema import EvaluationContext

# Supports clauses like ">=3.0.0", "<4", "==3.38.0", "!=3.1.0"
REQUIREMENT_CLAUSE = re.compile(r"^(>=|<=|==|!=|>|<)?\s*(\d+(?:\.\d+){0,2})$")
VERSION_PREFIX = re.compile(r"^v?(\d+(?:\.\d+){0,2})")


def parse_version(version: str) -> tuple[int, int, int] | None:
    """
    Parse the numeric part of a version string.

    Examples:
        "3.38.0"       -> (3, 38, 0)
        "v4"           -> (4, 0, 0)
        "3.0.0-beta.1" -> (3, 0, 0)
        "latest"       -> None
    """
    match = VERSION_PREFIX.match(version.strip())
    if not match:
        return None
    parts = [int(p) for p in match.group(1).split(".")]
    while len(parts) < 3:
        parts.append(0)
    return parts[0], parts[1], parts[2]


def check_requirement(version: str, requirement: str) -> list[str]:
    """
    Check a version against a comma-separated requirement.

    Returns:
        List of unsatisfied or malformed clauses (empty if satisfied)

    Raises:
        ValueError: If the version or a clause cannot be parsed
    """
    current = parse_version(version)
    if current is None:
        msg = f"Cannot parse framework version: {version!r}"
        raise ValueError(msg)

    unmet = []
    for clause in (c.strip() for c in requirement.split(",")):
        if not clause:
            continue
        match = REQUIREMENT_CLAUSE.match(clause)
        if not match:
            msg = f"Invalid version requirement: {clause!r}. Expected format like '>=3.0.0'"
            raise ValueError(msg)

        operator = match.group(1) or "=="
        target = parse_version(match.group(2))
        satisfied = {
            ">=": current >= target,
            "<=": current <= target,
            "==": current == target,
            "!=": current != target,
            ">": current > target,
            "<": current < target,
        }[operator]
        if not satisfied:
            unmet.append(clause)
    return unmet


class AllowedStagesPolicy(Policy):
    """Config: list of stage names the service may be deployed to."""

    @property
    def name(self) -> str:
        return "allowed-stages"

    @property
    def docs(self) -> str:
        return docs_url(self.name)

    @property
    def description(self) -> str:
        return "The service may only be deployed to approved stages"

    def invoke(self, outcome: PolicyOutcome, context: EvaluationContext, config: Any) -> None:
        allowed = list(config or [])
        if context.provider.stage not in allowed:
            outcome.fail(
                f'Stage name "{context.provider.stage}" not in list of permitted names: '
                f"{', '.join(allowed) or '(none)'}"
            )
            return
        outcome.approve()


class AllowedRegionsPolicy(Policy):
    """Config: list of region names the service may be deployed to."""

    @property
    def name(self) -> str:
        return "allowed-regions"

    @property
    def docs(self) -> str:
        return docs_url(self.name)

    @property
    def description(self) -> str:
        return "The service may only be deployed to approved regions"

    def invoke(self, outcome: PolicyOutcome, context: EvaluationContext, config: Any) -> None:
        allowed = list(config or [])
        if context.provider.region not in allowed:
            outcome.fail(
                f'Region "{context.provider.region}" not in list of permitted regions: '
                f"{', '.join(allowed) or '(none)'}"
            )
            return
        outcome.approve()


class FrameworkVersionPolicy(Policy):
    """Config: requirement string, e.g. ">=3.0.0, <4.0.0"."""

    @property
    def name(self) -> str:
        return "framework-version"

    @property
    def docs(self) -> str:
        return docs_url(self.name)

    @property
    def description(self) -> str:
        return "The framework version must satisfy the configured requirement"

    def invoke(self, outcome: PolicyOutcome, context: EvaluationContext, config: Any) -> None:
        requirement = str(config or "").strip()
        if not requirement:
            outcome.fail("No framework version requirement configured.")
            return

        try:
            unmet = check_requirement(context.tool_version, requirement)
        except ValueError as e:
            outcome.fail(str(e))
            return

        if unmet:
            outcome.fail(
                f"Framework version {context.tool_version} does not satisfy "
                f"{', '.join(unmet)} (requirement: {requirement})."
            )
            return
        outcome.approve()


def register_deployment_policies() -> None:
    """Register the deployment target policies in the default registry."""
    from safeguards.policies.registry import default_registry

    default_registry.register(AllowedStagesPolicy())
    default_registry.register(AllowedRegionsPolicy())
    default_registry.register(FrameworkVersionPolicy())
