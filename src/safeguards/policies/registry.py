"""
Policy registry for Safeguards.

The registry is the built-in policy catalog: a mapping from policy name
to policy instance. Built-in policies register themselves into
default_registry when safeguards.policies is imported.

Usage:
    from safeguards.policies.registry import default_registry, register_policy

    register_policy(MyPolicy())
    policy = default_registry.get("my-policy")
"""

from typing import Iterator

from safeguards.errors import PolicyNotFoundError
from safeguards.policies.base import Policy


class PolicyRegistry:
    """
    Registry for looking up policies by name.

    Attributes:
        _policies: Internal mapping of policy names to policy instances
    """

    def __init__(self) -> None:
        self._policies: dict[str, Policy] = {}

    def register(self, policy: Policy) -> None:
        """
        Register a policy, replacing any policy with the same name.

        Raises:
            ValueError: If policy is None or has an empty name
        """
        if policy is None:
            msg = "Cannot register None as a policy"
            raise ValueError(msg)

        name = policy.name
        if not name:
            msg = "Policy must have a non-empty name"
            raise ValueError(msg)

        self._policies[name] = policy

    def get(self, name: str) -> Policy:
        """
        Look up a policy by name.

        Raises:
            PolicyNotFoundError: If no policy with that name is registered
        """
        policy = self._policies.get(name)
        if policy is None:
            raise PolicyNotFoundError(policy_name=name)
        return policy

    def get_optional(self, name: str) -> Policy | None:
        return self._policies.get(name)

    def has(self, name: str) -> bool:
        return name in self._policies

    def unregister(self, name: str) -> bool:
        """Remove a policy. Returns False if it wasn't registered."""
        if name in self._policies:
            del self._policies[name]
            return True
        return False

    def clear(self) -> None:
        self._policies.clear()

    def list_policies(self) -> list[str]:
        """List all registered policy names in sorted order."""
        return sorted(self._policies.keys())

    def __len__(self) -> int:
        return len(self._policies)

    def __iter__(self) -> Iterator[Policy]:
        return iter(self._policies.values())

    def __contains__(self, name: str) -> bool:
        return name in self._policies

    def __repr__(self) -> str:
        policies = ", ".join(self.list_policies())
        return f"<PolicyRegistry: [{policies}]>"


# Global default registry instance (the built-in catalog)
default_registry = PolicyRegistry()


def register_policy(policy: Policy) -> None:
    """Register a policy in the default registry."""
    default_registry.register(policy)


def get_policy(name: str) -> Policy:
    """
    Get a policy from the default registry.

    Raises:
        PolicyNotFoundError: If no policy with that name is registered
    """
    return default_registry.get(name)
