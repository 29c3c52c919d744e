"""
Policy loader for Safeguards.

Resolves PolicyConfig records into LoadedPolicy units before anything runs.

Resolution order for a record:
    1. If ``path`` (source_override) is set, look for the policy in that
       directory: ``<name>.py``, ``<name_with_underscores>.py``, or a
       ``<name>/__init__.py`` package
    2. The built-in catalog, by name

A policy module loaded from a directory must define ``POLICY``: either a
Policy instance or a plain/async function ``(outcome, context, config)``.
A function's ``docs`` attribute, or the module's ``DOCS``, becomes the
documentation reference.

Any resolution failure is a configuration error and aborts the run before
a single policy executes.
"""

from __future__ import annotations

import hashlib
import importlib.util
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType

from safeguards.errors import PolicyNotFoundError, PolicySourceError
from safeguards.policies.base import FunctionPolicy, Policy
from safeguards.policies.registry import PolicyRegistry, default_registry
from safeguards.schema import EnforcementLevel, PolicyConfig

logger = logging.getLogger(__name__)

EXTERNAL_MODULE_PREFIX = "_safeguards_external"


@dataclass(frozen=True)
class LoadedPolicy:
    """
    A policy configuration paired with its executable unit.

    Attributes:
        config: The declared configuration record
        policy: The resolved implementation
        source: Where the implementation came from ("builtin" or a file path)
    """

    config: PolicyConfig
    policy: Policy
    source: str = "builtin"

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def title(self) -> str:
        return self.config.title

    @property
    def description(self) -> str | None:
        return self.config.description

    @property
    def enforcement_level(self) -> EnforcementLevel:
        return self.config.enforcement_level

    @property
    def docs(self) -> str | None:
        return self.policy.docs


def _candidate_files(directory: Path, name: str) -> list[Path]:
    stems = [name]
    if "-" in name:
        stems.append(name.replace("-", "_"))

    candidates = []
    for stem in stems:
        candidates.append(directory / f"{stem}.py")
        candidates.append(directory / stem / "__init__.py")
    return candidates


def _module_name(file_path: Path) -> str:
    digest = hashlib.sha256(str(file_path).encode("utf-8")).hexdigest()[:12]
    stem = file_path.parent.name if file_path.name == "__init__.py" else file_path.stem
    return f"{EXTERNAL_MODULE_PREFIX}_{stem.replace('-', '_')}_{digest}"


def _import_file(file_path: Path, policy_name: str) -> ModuleType:
    module_name = _module_name(file_path)
    if module_name in sys.modules:
        return sys.modules[module_name]

    spec = importlib.util.spec_from_file_location(module_name, str(file_path))
    if spec is None or spec.loader is None:
        raise PolicySourceError(
            policy_name=policy_name,
            source=str(file_path),
            underlying_error="cannot create an import spec",
        )

    module = importlib.util.module_from_spec(spec)
    # registered before exec so the module can import itself
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        del sys.modules[module_name]
        raise PolicySourceError(
            policy_name=policy_name,
            source=str(file_path),
            underlying_error=f"{type(e).__name__}: {e}",
        ) from e
    return module


def load_policy_from_file(file_path: Path | str, name: str) -> Policy:
    """
    Load a policy implementation from a Python file.

    Args:
        file_path: Path to the module defining ``POLICY``
        name: Policy name used when wrapping a plain function

    Raises:
        PolicySourceError: If the file cannot be imported or defines no usable POLICY
    """
    file_path = Path(file_path).resolve()
    module = _import_file(file_path, name)

    if not hasattr(module, "POLICY"):
        raise PolicySourceError(
            policy_name=name,
            source=str(file_path),
            underlying_error="module must define POLICY",
        )

    target = module.POLICY
    if isinstance(target, Policy):
        return target
    if callable(target):
        docs = getattr(target, "docs", None) or getattr(module, "DOCS", None)
        return FunctionPolicy(name, target, docs=docs)

    raise PolicySourceError(
        policy_name=name,
        source=str(file_path),
        underlying_error=f"POLICY must be a Policy or a function, got {type(target).__name__}",
    )


def load_policy(
    config: PolicyConfig,
    registry: PolicyRegistry | None = None,
    base_dir: Path | str = ".",
) -> LoadedPolicy:
    """
    Resolve one policy configuration record.

    Args:
        config: The declared record
        registry: Built-in catalog (defaults to the global registry)
        base_dir: Directory that relative ``path`` overrides resolve against

    Returns:
        LoadedPolicy for the record

    Raises:
        PolicyNotFoundError: If the name resolves nowhere
        PolicySourceError: If a matching source file fails to load
    """
    registry = registry if registry is not None else default_registry

    if config.source_override:
        directory = Path(config.source_override)
        if not directory.is_absolute():
            directory = Path(base_dir) / directory
        directory = directory.resolve()

        for candidate in _candidate_files(directory, config.name):
            if candidate.is_file():
                logger.debug("Loading policy %s from %s", config.name, candidate)
                policy = load_policy_from_file(candidate, config.name)
                return LoadedPolicy(config=config, policy=policy, source=str(candidate))

        builtin = registry.get_optional(config.name)
        if builtin is None:
            raise PolicyNotFoundError(policy_name=config.name, source=str(directory))
        logger.debug("Policy %s not in %s, using built-in", config.name, directory)
        return LoadedPolicy(config=config, policy=builtin)

    logger.debug("Loading built-in policy %s", config.name)
    return LoadedPolicy(config=config, policy=registry.get(config.name))


def load_policies(
    configs: list[PolicyConfig],
    registry: PolicyRegistry | None = None,
    base_dir: Path | str = ".",
) -> list[LoadedPolicy]:
    """
    Resolve every record, in declaration order.

    Nothing is returned unless every record resolves.
    """
    loaded = []
    for index, config in enumerate(configs):
        try:
            loaded.append(load_policy(config, registry=registry, base_dir=base_dir))
        except (PolicyNotFoundError, PolicySourceError) as e:
            e.index = index
            e.context["index"] = index
            raise
    return loaded
