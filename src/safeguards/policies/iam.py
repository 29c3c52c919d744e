"""
IAM policies for Safeguards.

- no-wild-iam-role-statements: Allow statements in IAM roles may not use
  wildcard actions ("*", "service:*") or wildcard resources ("*")
"""

from typing import Any

from safeguards.policies.base import Policy, PolicyOutcome
from safeguards.policies.cloudformation import IAM_ROLE, docs_url, iter_resources
from safeguards.schema import EvaluationContext


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _is_wild_action(action: Any) -> bool:
    return isinstance(action, str) and (action == "*" or action.endswith(":*"))


def _is_wild_resource(resource: Any) -> bool:
    # {"Fn::Join": ["", ["*"]]} is as wild as "*"
    if isinstance(resource, dict) and "Fn::Join" in resource:
        parts = resource["Fn::Join"]
        if isinstance(parts, list) and len(parts) == 2 and isinstance(parts[1], list):
            return "".join(str(p) for p in parts[1]) == "*"
    return resource == "*"


class NoWildIamRoleStatementsPolicy(Policy):
    """Forbid wildcard actions and resources in IAM role Allow statements."""

    @property
    def name(self) -> str:
        return "no-wild-iam-role-statements"

    @property
    def docs(self) -> str:
        return docs_url(self.name)

    @property
    def description(self) -> str:
        return "IAM role statements must not grant wildcard actions or resources"

    def invoke(self, outcome: PolicyOutcome, context: EvaluationContext, config: Any) -> None:
        violations = []

        for role_id, properties in iter_resources(context, IAM_ROLE):
            for policy in _as_list(properties.get("Policies")):
                if not isinstance(policy, dict):
                    continue
                document = policy.get("PolicyDocument") or {}
                for statement in _as_list(document.get("Statement")):
                    if not isinstance(statement, dict) or statement.get("Effect") != "Allow":
                        continue
                    wild_actions = [a for a in _as_list(statement.get("Action")) if _is_wild_action(a)]
                    if wild_actions:
                        violations.append(
                            f"iamRoleStatement in {role_id} granting Action='{', '.join(wild_actions)}'. "
                            "Wildcard actions in iamRoleStatements are not permitted."
                        )
                    if any(_is_wild_resource(r) for r in _as_list(statement.get("Resource"))):
                        violations.append(
                            f"iamRoleStatement in {role_id} granting Resource='*'. "
                            "Wildcard resources in iamRoleStatements are not permitted."
                        )

        if violations:
            outcome.fail(" ".join(violations))
            return
        outcome.approve()


def register_iam_policies() -> None:
    """Register the IAM policies in the default registry."""
    from safeguards.policies.registry import default_registry

    default_registry.register(NoWildIamRoleStatementsPolicy())
