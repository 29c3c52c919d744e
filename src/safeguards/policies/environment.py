"""
Environment variable policies for Safeguards.

- no-secret-env-vars: Function environment variables may not contain
  values that look like credentials
"""

import re
from typing import Any

from safeguards.policies.base import Policy, PolicyOutcome
from safeguards.policies.cloudformation import (
    LAMBDA_FUNCTION,
    docs_url,
    function_label,
    iter_resources,
)
from safeguards.schema import EvaluationContext

SECRET_PATTERNS = {
    "AWS access key": re.compile(r"(?<![A-Z0-9])(AKIA|ASIA)[0-9A-Z]{16}(?![A-Z0-9])"),
    "private key": re.compile(r"-----BEGIN (RSA |EC |DSA |OPENSSH |PGP )?PRIVATE KEY"),
    "Slack token": re.compile(r"xox[abposr]-[0-9A-Za-z-]{10,}"),
    "GitHub token": re.compile(r"gh[pousr]_[0-9A-Za-z]{36}"),
    "Google API key": re.compile(r"AIza[0-9A-Za-z_-]{35}"),
    "Stripe secret key": re.compile(r"sk_live_[0-9A-Za-z]{24,}"),
}


def find_secret(value: str) -> str | None:
    """Return the kind of secret a value looks like, or None."""
    for kind, pattern in SECRET_PATTERNS.items():
        if pattern.search(value):
            return kind
    return None


class NoSecretEnvVarsPolicy(Policy):
    """Forbid credential-looking literals in function environment variables."""

    @property
    def name(self) -> str:
        return "no-secret-env-vars"

    @property
    def docs(self) -> str:
        return docs_url(self.name)

    @property
    def description(self) -> str:
        return "Secrets must not be stored in function environment variables"

    def invoke(self, outcome: PolicyOutcome, context: EvaluationContext, config: Any) -> None:
        found = []
        for logical_id, properties in iter_resources(context, LAMBDA_FUNCTION):
            environment = properties.get("Environment") or {}
            variables = environment.get("Variables") or {}
            for key, value in variables.items():
                # references ({"Ref": ...}, SSM lookups) are resolved at deploy time
                if not isinstance(value, str):
                    continue
                kind = find_secret(value)
                if kind:
                    found.append(
                        f'Environment variable {key} on function "{function_label(logical_id, properties)}" '
                        f"looks like a {kind}."
                    )

        if found:
            outcome.fail(" ".join(found))
            return
        outcome.approve()


def register_environment_policies() -> None:
    """Register the environment variable policies in the default registry."""
    from safeguards.policies.registry import default_registry

    default_registry.register(NoSecretEnvVarsPolicy())
