"""
Compiled artifact loading for Safeguards.

Reads the packaging output directory (``.serverless`` by default) and
decodes every JSON or YAML file into a mapping of file name to content.
Files with other extensions (zip bundles, state files) are ignored.

An artifact with a recognized extension that fails to decode is fatal:
policies would otherwise evaluate an incomplete picture of the deployment.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from safeguards.errors import ArtifactParseError, ArtifactsNotFoundError
from safeguards.schema import JSON_SUFFIXES, YAML_SUFFIXES, parse_structured_content

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIXES = JSON_SUFFIXES + YAML_SUFFIXES


def is_structured_artifact(filename: str) -> bool:
    """Whether a file name has a JSON or YAML extension (case-insensitive)."""
    return filename.lower().endswith(ARTIFACT_SUFFIXES)


def load_artifacts(artifacts_dir: Path | str) -> dict[str, Any]:
    """
    Decode every structured artifact in a directory.

    Args:
        artifacts_dir: The packaging output directory

    Returns:
        Mapping of file name (not path) to decoded content, sorted by name

    Raises:
        ArtifactsNotFoundError: If the directory does not exist
        ArtifactParseError: If a JSON/YAML file fails to decode (names the file)
    """
    artifacts_dir = Path(artifacts_dir)
    if not artifacts_dir.is_dir():
        raise ArtifactsNotFoundError(path=str(artifacts_dir))

    artifacts: dict[str, Any] = {}
    for path in sorted(artifacts_dir.iterdir()):
        if not path.is_file() or not is_structured_artifact(path.name):
            continue
        try:
            artifacts[path.name] = parse_structured_content(path.name, path.read_bytes())
        except (OSError, UnicodeDecodeError, ValueError, yaml.YAMLError) as e:
            raise ArtifactParseError(
                path=str(path),
                filename=path.name,
                underlying_error=str(e),
            ) from e

    logger.debug("Loaded %d artifacts from %s", len(artifacts), artifacts_dir)
    return artifacts
