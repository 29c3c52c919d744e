"""
Schema definitions for Safeguards.

This module defines the Pydantic models used throughout Safeguards:
- PolicyConfig: One user-declared policy instance from the service declaration
- ProviderInfo: Provider metadata (name, stage, region, naming options)
- EvaluationContext: The read-only snapshot every policy evaluates against
- EngineConfig: Run-level options for the engine

Design Decisions:
    - Declared records keep the declaration's spelling through aliases
      (safeguard, enforcementLevel, path) so YAML maps onto models directly
    - Models are immutable (frozen=True); a run never edits its inputs
    - Unknown keys in a policy record are ignored, matching what users
      already have in their declarations
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from safeguards.errors import DeclarationError, PolicyConfigError, UnrecognizedFormatError


# =============================================================================
# Enums
# =============================================================================


class EnforcementLevel(str, Enum):
    """
    What a failed policy does to the deployment.

    ERROR blocks the deployment. WARNING is reported but never blocks.
    """

    ERROR = "error"
    WARNING = "warning"


# =============================================================================
# Policy Configuration
# =============================================================================


class PolicyConfig(BaseModel):
    """
    A single policy entry from ``custom.safeguards``.

    Attributes:
        name: Which policy implementation to load (declared as ``safeguard``)
        title: Human-facing label; defaults to "Policy: <name>"
        description: Optional longer explanation shown in failure details
        enforcement_level: error (blocks) or warning (reports only)
        config: Opaque payload handed to the policy verbatim
        stage: Restrict to one stage or a list of stages (None = all stages)
        source_override: Directory to load the policy from (declared as ``path``)
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = Field(
        ...,
        alias="safeguard",
        description="Policy implementation identifier",
        min_length=1,
    )
    title: str = Field(
        default="",
        description="Human-facing label",
    )
    description: str | None = Field(
        default=None,
        description="Longer explanation shown in failure details",
    )
    enforcement_level: EnforcementLevel = Field(
        default=EnforcementLevel.ERROR,
        alias="enforcementLevel",
        description="Whether a failure blocks the deployment",
    )
    config: Any = Field(
        default=None,
        description="Opaque configuration passed to the policy",
    )
    stage: str | list[str] | None = Field(
        default=None,
        description="Stage restriction (None applies to every stage)",
    )
    source_override: str | None = Field(
        default=None,
        alias="path",
        description="Directory to load the policy implementation from",
    )

    @model_validator(mode="before")
    @classmethod
    def default_title(cls, data: Any) -> Any:
        """Derive the title from the policy name when none is given."""
        if isinstance(data, dict) and not data.get("title"):
            name = data.get("safeguard", data.get("name"))
            if name:
                data = {**data, "title": f"Policy: {name}"}
        return data

    def applies_to(self, stage: str) -> bool:
        """
        Check whether this policy runs for the given stage.

        Examples:
            stage=None or ""    -> applies to every stage
            stage="prod"        -> applies only to "prod"
            stage=["dev", "qa"] -> applies to "dev" and "qa"
            stage=[]            -> applies to no stage
        """
        if self.stage is None or self.stage == "":
            return True
        if isinstance(self.stage, str):
            return self.stage == stage
        return stage in self.stage


# =============================================================================
# Evaluation Context
# =============================================================================


class ProviderInfo(BaseModel):
    """
    Provider-specific metadata handed to policies.

    Attributes:
        name: Provider identifier (e.g., "aws")
        stage: The stage being deployed
        region: The region being deployed to
        naming: Provider naming conventions (resource name templates)
        options: Remaining CLI/provider options
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="aws", description="Provider identifier")
    stage: str = Field(default="dev", description="Current deployment stage", min_length=1)
    region: str = Field(default="us-east-1", description="Current deployment region")
    naming: dict[str, Any] = Field(default_factory=dict, description="Naming conventions")
    options: dict[str, Any] = Field(default_factory=dict, description="Additional options")


class EvaluationContext(BaseModel):
    """
    The snapshot every policy evaluates against.

    Built once per run from detached copies of the declaration and
    artifacts. The runner hands every policy its own deep copy, so an
    in-place edit is seen neither by the caller nor by another policy.
    Freezing only blocks attribute assignment.

    Attributes:
        compiled: Artifact file name -> parsed content
        declaration: Copy of the service declaration
        provider: Provider metadata including the current stage
        tool_version: Version of the orchestrating framework
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    compiled: dict[str, Any] = Field(default_factory=dict, description="Compiled artifacts")
    declaration: dict[str, Any] = Field(default_factory=dict, description="Service declaration")
    provider: ProviderInfo = Field(default_factory=ProviderInfo, description="Provider metadata")
    tool_version: str = Field(default="", description="Framework version")

    @property
    def stage(self) -> str:
        """Shortcut for the current deployment stage."""
        return self.provider.stage


# =============================================================================
# Engine Configuration
# =============================================================================


class EngineConfig(BaseModel):
    """
    Run-level options for the engine.

    Attributes:
        artifacts_dir: Artifacts directory name, relative to the service directory
        isolate_faults: Record a raising policy as an error-level failure
            instead of aborting the run
        strip_keys: Declaration keys removed before the context copy is made
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    artifacts_dir: str = Field(
        default=".serverless",
        description="Artifacts directory name",
        min_length=1,
    )
    isolate_faults: bool = Field(
        default=False,
        description="Capture policy exceptions as failed results",
    )
    strip_keys: list[str] = Field(
        default_factory=lambda: ["serverless"],
        description="Orchestration-only declaration keys",
    )


# =============================================================================
# Loading Helpers
# =============================================================================

JSON_SUFFIXES = (".json",)
YAML_SUFFIXES = (".yml", ".yaml")
DECLARATION_NAMES = ("serverless.yml", "serverless.yaml", "serverless.json")


def parse_structured_content(filename: str, content: str | bytes) -> Any:
    """
    Decode JSON or YAML content based on the file extension.

    Args:
        filename: Name used to pick the decoder
        content: Raw file content

    Returns:
        The decoded object

    Raises:
        UnrecognizedFormatError: If the extension is neither JSON nor YAML
        ValueError / yaml.YAMLError: If the content does not decode
    """
    lowered = filename.lower()
    if isinstance(content, bytes):
        content = content.decode("utf-8")

    if lowered.endswith(JSON_SUFFIXES):
        return json.loads(content)
    if lowered.endswith(YAML_SUFFIXES):
        return yaml.safe_load(content)

    raise UnrecognizedFormatError(path=filename)


def find_declaration(service_dir: Path | str) -> Path:
    """
    Locate the service declaration file in a service directory.

    Raises:
        DeclarationError: If no declaration file exists
    """
    service_dir = Path(service_dir)
    for name in DECLARATION_NAMES:
        candidate = service_dir / name
        if candidate.is_file():
            return candidate

    raise DeclarationError(
        path=str(service_dir),
        message=f"No service declaration found in {service_dir}",
        suggestion=f"Expected one of: {', '.join(DECLARATION_NAMES)}",
    )


def load_declaration(path: Path | str) -> dict[str, Any]:
    """
    Load a service declaration from a YAML or JSON file.

    Args:
        path: Path to the declaration file

    Returns:
        The declaration as a dict

    Raises:
        DeclarationError: If the file cannot be read or decoded, or is not a mapping
    """
    path = Path(path)
    try:
        data = parse_structured_content(path.name, path.read_text())
    except UnrecognizedFormatError:
        raise
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise DeclarationError(path=str(path), validation_error=str(e)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DeclarationError(
            path=str(path),
            validation_error=f"expected a mapping, got {type(data).__name__}",
        )
    return data


def policy_configs_from_declaration(declaration: dict[str, Any]) -> list[PolicyConfig]:
    """
    Extract policy configuration records from ``custom.safeguards``.

    A missing, null or false ``custom.safeguards`` yields an empty list.

    Raises:
        PolicyConfigError: If any record fails validation (names the record index)
    """
    custom = declaration.get("custom") or {}
    entries = custom.get("safeguards") if isinstance(custom, dict) else None
    if not entries:
        return []

    if not isinstance(entries, list):
        raise PolicyConfigError(
            message=f"custom.safeguards must be a list, got {type(entries).__name__}",
        )

    configs = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise PolicyConfigError(
                message=f"custom.safeguards[{index}] must be a mapping",
                index=index,
            )
        try:
            configs.append(PolicyConfig.model_validate(entry))
        except ValidationError as e:
            raise PolicyConfigError(
                message=f"Invalid policy configuration at custom.safeguards[{index}]: {e}",
                policy_name=entry.get("safeguard"),
                index=index,
            ) from e
    return configs


def load_policy_configs(path: Path | str) -> list[PolicyConfig]:
    """Load policy configuration records straight from a declaration file."""
    return policy_configs_from_declaration(load_declaration(path))
