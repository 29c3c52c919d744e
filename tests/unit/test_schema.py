"""
Unit tests for schema models and declaration loading.

Tests cover:
- PolicyConfig aliases, defaults and stage applicability
- ProviderInfo / EvaluationContext / EngineConfig
- Structured content parsing
- Declaration discovery and loading
- Extraction of custom.safeguards records
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from safeguards.errors import DeclarationError, PolicyConfigError, UnrecognizedFormatError
from safeguards.schema import (
    EnforcementLevel,
    EngineConfig,
    EvaluationContext,
    PolicyConfig,
    ProviderInfo,
    find_declaration,
    load_declaration,
    load_policy_configs,
    parse_structured_content,
    policy_configs_from_declaration,
)


# =============================================================================
# PolicyConfig Tests
# =============================================================================


class TestPolicyConfig:
    """Tests for PolicyConfig model."""

    def test_declaration_spelling(self) -> None:
        config = PolicyConfig.model_validate({
            "safeguard": "require-dlq",
            "enforcementLevel": "warning",
            "path": "./policies",
            "config": {"a": 1},
        })
        assert config.name == "require-dlq"
        assert config.enforcement_level == EnforcementLevel.WARNING
        assert config.source_override == "./policies"
        assert config.config == {"a": 1}

    def test_defaults(self) -> None:
        config = PolicyConfig.model_validate({"safeguard": "require-dlq"})
        assert config.title == "Policy: require-dlq"
        assert config.description is None
        assert config.enforcement_level == EnforcementLevel.ERROR
        assert config.config is None
        assert config.stage is None
        assert config.source_override is None

    def test_explicit_title_kept(self) -> None:
        config = PolicyConfig.model_validate({"safeguard": "x", "title": "DLQ check"})
        assert config.title == "DLQ check"

    def test_populate_by_field_name(self) -> None:
        config = PolicyConfig(name="allowed-stages", enforcement_level="warning")
        assert config.name == "allowed-stages"
        assert config.title == "Policy: allowed-stages"

    def test_name_required(self) -> None:
        with pytest.raises(ValidationError):
            PolicyConfig.model_validate({"title": "no name"})

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PolicyConfig.model_validate({"safeguard": ""})

    def test_invalid_enforcement_level(self) -> None:
        with pytest.raises(ValidationError):
            PolicyConfig.model_validate({"safeguard": "x", "enforcementLevel": "fatal"})

    def test_unknown_keys_ignored(self) -> None:
        config = PolicyConfig.model_validate({"safeguard": "x", "legacy": True})
        assert not hasattr(config, "legacy")

    def test_frozen(self) -> None:
        config = PolicyConfig.model_validate({"safeguard": "x"})
        with pytest.raises(ValidationError):
            config.name = "y"

    def test_applies_to_all_stages_when_unset(self) -> None:
        config = PolicyConfig.model_validate({"safeguard": "x"})
        assert config.applies_to("dev")
        assert config.applies_to("prod")

    def test_applies_to_single_stage(self) -> None:
        config = PolicyConfig.model_validate({"safeguard": "x", "stage": "prod"})
        assert config.applies_to("prod")
        assert not config.applies_to("dev")

    def test_applies_to_stage_list(self) -> None:
        config = PolicyConfig.model_validate({"safeguard": "x", "stage": ["dev", "staging"]})
        assert config.applies_to("dev")
        assert config.applies_to("staging")
        assert not config.applies_to("prod")

    def test_empty_stage_list_applies_to_nothing(self) -> None:
        config = PolicyConfig.model_validate({"safeguard": "x", "stage": []})
        assert not config.applies_to("dev")
        assert not config.applies_to("prod")

    def test_empty_stage_string_applies_to_all(self) -> None:
        config = PolicyConfig.model_validate({"safeguard": "x", "stage": ""})
        assert config.applies_to("dev")


# =============================================================================
# Context Model Tests
# =============================================================================


class TestContextModels:
    """Tests for ProviderInfo, EvaluationContext and EngineConfig."""

    def test_provider_defaults(self) -> None:
        provider = ProviderInfo()
        assert provider.name == "aws"
        assert provider.stage == "dev"
        assert provider.region == "us-east-1"

    def test_provider_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            ProviderInfo(profile="default")

    def test_context_stage_shortcut(self) -> None:
        context = EvaluationContext(provider=ProviderInfo(stage="prod"))
        assert context.stage == "prod"

    def test_engine_config_defaults(self) -> None:
        config = EngineConfig()
        assert config.artifacts_dir == ".serverless"
        assert config.isolate_faults is False
        assert config.strip_keys == ["serverless"]


# =============================================================================
# Parsing and Loading Tests
# =============================================================================


class TestParseStructuredContent:
    """Tests for parse_structured_content."""

    def test_json(self) -> None:
        assert parse_structured_content("a.json", '{"a": 1}') == {"a": 1}

    def test_yaml_both_extensions(self) -> None:
        assert parse_structured_content("a.yml", "a: 1") == {"a": 1}
        assert parse_structured_content("a.YAML", "a: 1") == {"a": 1}

    def test_bytes_content(self) -> None:
        assert parse_structured_content("a.json", b'[1, 2]') == [1, 2]

    def test_unrecognized_extension(self) -> None:
        with pytest.raises(UnrecognizedFormatError):
            parse_structured_content("a.txt", "a: 1")

    def test_invalid_json_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_structured_content("a.json", "{not json")


class TestDeclarationLoading:
    """Tests for find_declaration / load_declaration."""

    def test_find_prefers_yml(self, temp_dir: Path) -> None:
        (temp_dir / "serverless.yml").write_text("service: a")
        (temp_dir / "serverless.json").write_text('{"service": "b"}')
        assert find_declaration(temp_dir).name == "serverless.yml"

    def test_find_missing(self, temp_dir: Path) -> None:
        with pytest.raises(DeclarationError) as exc_info:
            find_declaration(temp_dir)
        assert "serverless.yml" in exc_info.value.suggestion

    def test_load_json_declaration(self, temp_dir: Path) -> None:
        path = temp_dir / "serverless.json"
        path.write_text(json.dumps({"service": "svc"}))
        assert load_declaration(path) == {"service": "svc"}

    def test_load_empty_file(self, temp_dir: Path) -> None:
        path = temp_dir / "serverless.yml"
        path.write_text("")
        assert load_declaration(path) == {}

    def test_load_non_mapping(self, temp_dir: Path) -> None:
        path = temp_dir / "serverless.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(DeclarationError):
            load_declaration(path)

    def test_load_invalid_yaml(self, temp_dir: Path) -> None:
        path = temp_dir / "serverless.yml"
        path.write_text("service: [unclosed")
        with pytest.raises(DeclarationError):
            load_declaration(path)


class TestPolicyConfigsFromDeclaration:
    """Tests for custom.safeguards extraction."""

    @pytest.mark.parametrize(
        "declaration",
        [
            {},
            {"custom": None},
            {"custom": {}},
            {"custom": {"safeguards": None}},
            {"custom": {"safeguards": False}},
            {"custom": {"safeguards": []}},
        ],
    )
    def test_nothing_declared(self, declaration: dict) -> None:
        assert policy_configs_from_declaration(declaration) == []

    def test_records_in_order(self) -> None:
        declaration = {
            "custom": {
                "safeguards": [
                    {"safeguard": "require-dlq"},
                    {"safeguard": "allowed-stages", "config": ["dev"]},
                ]
            }
        }
        configs = policy_configs_from_declaration(declaration)
        assert [c.name for c in configs] == ["require-dlq", "allowed-stages"]

    def test_not_a_list(self) -> None:
        with pytest.raises(PolicyConfigError):
            policy_configs_from_declaration({"custom": {"safeguards": {"safeguard": "x"}}})

    def test_invalid_record_names_index(self) -> None:
        declaration = {
            "custom": {
                "safeguards": [
                    {"safeguard": "require-dlq"},
                    {"safeguard": "x", "enforcementLevel": "fatal"},
                ]
            }
        }
        with pytest.raises(PolicyConfigError) as exc_info:
            policy_configs_from_declaration(declaration)
        assert exc_info.value.index == 1
        assert exc_info.value.policy_name == "x"

    def test_non_mapping_record(self) -> None:
        with pytest.raises(PolicyConfigError) as exc_info:
            policy_configs_from_declaration({"custom": {"safeguards": ["require-dlq"]}})
        assert exc_info.value.index == 0

    def test_load_policy_configs_from_file(self, temp_dir: Path) -> None:
        path = temp_dir / "serverless.yml"
        path.write_text(
            "service: svc\n"
            "custom:\n"
            "  safeguards:\n"
            "    - safeguard: allowed-regions\n"
            "      config: [us-east-1]\n"
        )
        configs = load_policy_configs(path)
        assert len(configs) == 1
        assert configs[0].config == ["us-east-1"]
