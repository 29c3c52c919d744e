"""
Pytest configuration and fixtures for Safeguards tests.

This module provides shared fixtures used across unit and integration tests.
"""

import json
import tempfile
from pathlib import Path
from typing import Any, Callable, Generator

import pytest
import yaml

from safeguards.policies.cloudformation import TEMPLATE_NAME
from safeguards.schema import EvaluationContext, ProviderInfo


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_template() -> dict[str, Any]:
    """A compiled template with one SNS-triggered function and no DLQ."""
    return {
        "AWSTemplateFormatVersion": "2010-09-09",
        "Resources": {
            "HelloLambdaFunction": {
                "Type": "AWS::Lambda::Function",
                "Properties": {
                    "FunctionName": "svc-dev-hello",
                    "Runtime": "python3.12",
                    "Description": "Says hello to everyone who publishes to the topic",
                },
            },
            "HelloSnsPermission": {
                "Type": "AWS::Lambda::Permission",
                "Properties": {
                    "FunctionName": {"Fn::GetAtt": ["HelloLambdaFunction", "Arn"]},
                    "Action": "lambda:InvokeFunction",
                    "Principal": "sns.amazonaws.com",
                },
            },
        },
    }


@pytest.fixture
def make_context() -> Callable[..., EvaluationContext]:
    """Build an EvaluationContext around a template."""

    def _make(
        template: dict[str, Any] | None = None,
        stage: str = "dev",
        region: str = "us-east-1",
        tool_version: str = "3.38.0",
    ) -> EvaluationContext:
        compiled = {TEMPLATE_NAME: template} if template is not None else {}
        return EvaluationContext(
            compiled=compiled,
            declaration={"service": "svc"},
            provider=ProviderInfo(stage=stage, region=region),
            tool_version=tool_version,
        )

    return _make


@pytest.fixture
def write_service(temp_dir: Path) -> Callable[..., Path]:
    """Write a service directory: serverless.yml plus a packaged .serverless dir."""

    def _write(
        safeguards: list[dict[str, Any]] | None,
        template: dict[str, Any] | None = None,
        provider: dict[str, Any] | None = None,
    ) -> Path:
        declaration: dict[str, Any] = {
            "service": "svc",
            "provider": provider or {"name": "aws", "stage": "dev", "region": "us-east-1"},
        }
        if safeguards is not None:
            declaration["custom"] = {"safeguards": safeguards}
        (temp_dir / "serverless.yml").write_text(yaml.safe_dump(declaration))

        artifacts = temp_dir / ".serverless"
        artifacts.mkdir(exist_ok=True)
        (artifacts / TEMPLATE_NAME).write_text(json.dumps(template or {"Resources": {}}))
        (artifacts / "svc.zip").write_bytes(b"PK\x03\x04")
        return temp_dir

    return _write
