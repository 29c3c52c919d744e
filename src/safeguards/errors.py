"""
Exception hierarchy for Safeguards.

All Safeguards exceptions inherit from SafeguardsError, allowing callers to
catch all Safeguards-specific exceptions with a single except clause.

Exception Categories:
    - Configuration errors: unknown policy, unreadable policy source,
      malformed declaration. Fatal, raised before any policy runs.
    - Artifact errors: missing artifacts directory, undecodable artifact file.
    - Enforcement errors: a deployment blocked by an error-level policy.

Exceptions raised by a policy implementation itself are NOT wrapped here;
they propagate unmodified to the caller of the engine.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Configuration errors: 1xxx
ERROR_POLICY_CONFIG_INVALID = 1001
ERROR_POLICY_NOT_FOUND = 1002
ERROR_POLICY_SOURCE_INVALID = 1003
ERROR_DECLARATION_INVALID = 1004

# Artifact errors: 2xxx
ERROR_ARTIFACTS_NOT_FOUND = 2001
ERROR_ARTIFACT_PARSE = 2002
ERROR_UNRECOGNIZED_FORMAT = 2003

# Enforcement errors: 3xxx
ERROR_DEPLOYMENT_BLOCKED = 3001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class SafeguardsError(Exception):
    """
    Base exception for all Safeguards errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class PolicyConfigError(SafeguardsError):
    """
    Raised when a policy configuration record is invalid.

    Attributes:
        policy_name: Name of the offending policy (if known)
        index: Position of the record in the declaration (if known)
    """

    policy_name: str | None = None
    index: int | None = None

    def __post_init__(self) -> None:
        if self.code == 0:
            self.code = ERROR_POLICY_CONFIG_INVALID
        self.context.update({
            "policy_name": self.policy_name,
            "index": self.index,
        })


@dataclass
class PolicyNotFoundError(PolicyConfigError):
    """Raised when a policy name cannot be resolved to an implementation."""

    source: str | None = None

    def __post_init__(self) -> None:
        if not self.message:
            if self.source:
                self.message = f"Policy '{self.policy_name}' not found in {self.source}"
            else:
                self.message = f"Policy '{self.policy_name}' not found in the built-in catalog"
        if self.code == 0:
            self.code = ERROR_POLICY_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Use `safeguards policies` to list built-in policies, or set `path` to a policy directory"
        super().__post_init__()
        self.context["source"] = self.source


@dataclass
class PolicySourceError(PolicyConfigError):
    """Raised when a policy source file exists but cannot be loaded."""

    source: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Failed to load policy '{self.policy_name}' from {self.source}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_POLICY_SOURCE_INVALID
        super().__post_init__()
        self.context.update({
            "source": self.source,
            "underlying_error": self.underlying_error,
        })


@dataclass
class DeclarationError(SafeguardsError):
    """Raised when the service declaration cannot be read or is malformed."""

    path: str = ""
    validation_error: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Invalid service declaration {self.path}: {self.validation_error}"
        if self.code == 0:
            self.code = ERROR_DECLARATION_INVALID
        self.context.update({
            "path": self.path,
            "validation_error": self.validation_error,
        })


# =============================================================================
# Artifact Errors
# =============================================================================


@dataclass
class ArtifactError(SafeguardsError):
    """
    Base class for compiled artifact errors.

    Attributes:
        path: The artifact file or directory involved
    """

    path: str = ""

    def __post_init__(self) -> None:
        self.context["path"] = self.path


@dataclass
class ArtifactsNotFoundError(ArtifactError):
    """Raised when the artifacts directory does not exist."""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Artifacts directory not found: {self.path}"
        if self.code == 0:
            self.code = ERROR_ARTIFACTS_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Package the service before running safeguards"
        super().__post_init__()


@dataclass
class ArtifactParseError(ArtifactError):
    """Raised when an artifact with a recognized extension fails to decode."""

    filename: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Failed to parse file {self.filename} in the artifacts directory: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_ARTIFACT_PARSE
        super().__post_init__()
        self.context.update({
            "filename": self.filename,
            "underlying_error": self.underlying_error,
        })


@dataclass
class UnrecognizedFormatError(ArtifactError):
    """Raised when a structured file has neither a JSON nor a YAML extension."""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = (
                f'Unrecognized format of "{self.path}". '
                "Policies can be provided either via YAML or JSON files"
            )
        if self.code == 0:
            self.code = ERROR_UNRECOGNIZED_FORMAT
        super().__post_init__()


# =============================================================================
# Enforcement Errors
# =============================================================================


@dataclass
class DeploymentBlockedError(SafeguardsError):
    """
    Raised after aggregation when at least one error-level policy failed.

    Attributes:
        blocking: Titles of the error-level policies that failed
        evaluation: The Evaluation that produced the decision
    """

    blocking: list[str] = field(default_factory=list)
    evaluation: Any = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.message:
            self.message = "Deployment blocked by policy enforcement"
        if self.code == 0:
            self.code = ERROR_DEPLOYMENT_BLOCKED
        if not self.suggestion and self.blocking:
            self.suggestion = "Fix the failing policies: " + ", ".join(self.blocking)
        self.context["blocking"] = self.blocking
