"""
Helpers for reading the compiled CloudFormation template.

Built-in policies evaluate the update-stack template produced by packaging.
"""

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from safeguards.schema import EvaluationContext


TEMPLATE_NAME = "cloudformation-template-update-stack.json"
DOCS_BASE = "https://github.com/serverless/safeguards-plugin/blob/master/README.md"

LAMBDA_FUNCTION = "AWS::Lambda::Function"
LAMBDA_PERMISSION = "AWS::Lambda::Permission"
IAM_ROLE = "AWS::IAM::Role"


def docs_url(policy_name: str) -> str:
    """Documentation anchor for a built-in policy."""
    return f"{DOCS_BASE}#{policy_name}"


def get_template(context: "EvaluationContext") -> dict[str, Any]:
    """Return the update-stack template, or an empty dict if it wasn't compiled."""
    template = context.compiled.get(TEMPLATE_NAME)
    return template if isinstance(template, dict) else {}


def iter_resources(
    context: "EvaluationContext",
    resource_type: str,
) -> Iterator[tuple[str, dict[str, Any]]]:
    """
    Yield (logical_id, properties) for every resource of a type.

    Resources without Properties yield an empty dict.
    """
    resources = get_template(context).get("Resources") or {}
    for logical_id, resource in resources.items():
        if not isinstance(resource, dict) or resource.get("Type") != resource_type:
            continue
        properties = resource.get("Properties")
        yield logical_id, properties if isinstance(properties, dict) else {}


def referenced_logical_id(value: Any) -> str | None:
    """
    Resolve {"Ref": X} or {"Fn::GetAtt": [X, ...]} to X.

    Returns None for literal values.
    """
    if not isinstance(value, dict):
        return None
    if "Ref" in value:
        return value["Ref"]
    get_att = value.get("Fn::GetAtt")
    if isinstance(get_att, list) and get_att:
        return get_att[0]
    if isinstance(get_att, str):
        return get_att.split(".", 1)[0]
    return None


def function_label(logical_id: str, properties: dict[str, Any]) -> str:
    """Human name for a Lambda function: its FunctionName when literal."""
    name = properties.get("FunctionName")
    return name if isinstance(name, str) else logical_id
