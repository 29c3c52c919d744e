"""
Evaluation context construction.

build_context() shapes data the collaborators already fetched into the
EvaluationContext handed to every policy. It performs no I/O.

The declaration and artifacts are deep-copied so no policy can observe or
mutate the caller's live state. Orchestration-only keys (by default the
``serverless`` back-reference to the running framework) are dropped
before the copy is taken.
"""

import copy
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from safeguards.schema import EvaluationContext, ProviderInfo

logger = logging.getLogger(__name__)

DEFAULT_STRIP_KEYS = ("serverless",)


def build_context(
    declaration: Mapping[str, Any],
    artifacts: Mapping[str, Any],
    provider: ProviderInfo,
    tool_version: str = "",
    strip_keys: Iterable[str] = DEFAULT_STRIP_KEYS,
) -> EvaluationContext:
    """
    Build the snapshot shared by all policies in a run.

    Args:
        declaration: The service declaration
        artifacts: Artifact file name -> parsed content
        provider: Provider metadata, including the current stage
        tool_version: Version of the orchestrating framework
        strip_keys: Top-level declaration keys to leave out

    Returns:
        A frozen EvaluationContext holding detached copies
    """
    stripped = set(strip_keys)
    visible = {key: value for key, value in declaration.items() if key not in stripped}

    context = EvaluationContext(
        compiled=copy.deepcopy(dict(artifacts)),
        declaration=copy.deepcopy(visible),
        provider=provider,
        tool_version=tool_version,
    )
    logger.debug(
        "Built evaluation context: stage=%s artifacts=%s",
        provider.stage,
        sorted(context.compiled),
    )
    return context


def provider_from_declaration(
    declaration: Mapping[str, Any],
    name: str | None = None,
    stage: str | None = None,
    region: str | None = None,
) -> ProviderInfo:
    """
    Read provider metadata from the declaration's ``provider`` section.

    Explicit name/stage/region arguments win over the declared values, which win
    over the ProviderInfo defaults.
    """
    section = declaration.get("provider")
    if isinstance(section, str):
        section = {"name": section}
    if not isinstance(section, Mapping):
        section = {}

    fields: dict[str, Any] = {}
    for key, override in (("name", name), ("stage", stage), ("region", region)):
        value = override or section.get(key)
        if value:
            fields[key] = str(value)

    options = {k: v for k, v in section.items() if k not in ("name", "stage", "region")}
    if options:
        fields["options"] = options
    return ProviderInfo(**fields)
