"""
Policies module for Safeguards.

This module provides the policy interface, the built-in catalog and the
loader that turns declared policy records into executable units.

Built-in policies:
    - require-dlq: Asynchronously invoked functions need a dead letter queue
    - allowed-runtimes: Functions may only use approved runtimes
    - require-description: Functions need a meaningful description
    - no-wild-iam-role-statements: No wildcard actions/resources in IAM roles
    - no-secret-env-vars: No credentials in environment variables
    - allowed-stages: Deploy only to approved stages
    - allowed-regions: Deploy only to approved regions
    - framework-version: Framework version must satisfy a requirement

Architecture:
    - Policy: Abstract base class defining invoke(outcome, context, config)
    - PolicyOutcome: Capability object exposing approve() and fail(message)
    - PolicyRegistry: The catalog for looking up policies by name
    - load_policies(): Resolves records against the catalog or a source directory
"""

from safeguards.policies.base import FunctionPolicy, OutcomeRecorder, Policy, PolicyOutcome
from safeguards.policies.deployment import register_deployment_policies
from safeguards.policies.environment import register_environment_policies
from safeguards.policies.functions import register_function_policies
from safeguards.policies.iam import register_iam_policies
from safeguards.policies.loader import LoadedPolicy, load_policies, load_policy
from safeguards.policies.registry import (
    PolicyRegistry,
    default_registry,
    get_policy,
    register_policy,
)

# Register built-in policies
register_function_policies()
register_iam_policies()
register_environment_policies()
register_deployment_policies()

__all__ = [
    "FunctionPolicy",
    "LoadedPolicy",
    "OutcomeRecorder",
    "Policy",
    "PolicyOutcome",
    "PolicyRegistry",
    "default_registry",
    "get_policy",
    "load_policies",
    "load_policy",
    "register_policy",
]
