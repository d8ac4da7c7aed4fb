"""Tests for the configuration system."""

import pytest

from pincer.config import Config, ConfigurationError, load_config
from pincer.config.loader import _parse_env_value, apply_env_overrides, load_yaml_file
from pincer.config.merger import deep_merge, set_nested_value
from pincer.config.schema import PolicyConfig, ProviderConfig, SandboxConfig


class TestConfigSchema:
    """Tests for configuration schema validation."""

    def test_default_config(self):
        """Test default configuration is valid."""
        config = Config()

        assert config.providers.default == "anthropic/claude-sonnet-4-20250514"
        assert config.sandbox.mode == "process"
        assert config.policy.timeout_seconds == 30
        assert config.policy.network_access == "deny"
        assert config.policy.require_approval is True
        assert config.agent.id == "default"
        assert config.logging.level == "WARNING"

    def test_alias_resolution(self):
        """Test model alias resolution."""
        config = Config(providers=ProviderConfig(default="fast", aliases={"fast": "openai/gpt-4o-mini"}))

        assert config.resolve_model_alias("fast") == "openai/gpt-4o-mini"
        assert config.resolve_model_alias("gemini") == "gemini"
        assert config.get_default_model() == "openai/gpt-4o-mini"

    def test_invalid_network_access(self):
        """Test unknown network modes are rejected."""
        with pytest.raises(ValueError):
            PolicyConfig(network_access="sometimes")

    def test_invalid_sandbox_mode(self):
        """Test unknown sandbox modes are rejected."""
        with pytest.raises(ValueError):
            SandboxConfig(mode="vm")

    def test_negative_timeout(self):
        """Test negative timeouts are rejected."""
        with pytest.raises(ValueError):
            PolicyConfig(timeout_seconds=-1)


class TestDeepMerge:
    """Tests for deep merge functionality."""

    def test_scalars_and_nesting(self):
        """Test scalars are replaced and dicts merged."""
        base = {"policy": {"timeout_seconds": 30, "network_access": "deny"}, "x": 1}
        override = {"policy": {"timeout_seconds": 5}, "x": 2}

        assert deep_merge(base, override) == {"policy": {"timeout_seconds": 5, "network_access": "deny"}, "x": 2}

    def test_inputs_untouched(self):
        """Test neither argument is modified."""
        base = {"a": {"b": 1}}
        override = {"a": {"b": 2}}
        deep_merge(base, override)

        assert base == {"a": {"b": 1}}

    def test_list_replace(self):
        """Test plain list keys replace."""
        assert deep_merge({"l": ["a", "b"]}, {"l": ["c"]}) == {"l": ["c"]}

    def test_list_append_unique(self):
        """Test + appends items that are not present yet."""
        assert deep_merge({"l": ["a", "b"]}, {"+l": ["b", "c"]}) == {"l": ["a", "b", "c"]}
        assert deep_merge({}, {"+l": ["a"]}) == {"l": ["a"]}

    def test_list_remove(self):
        """Test - removes items."""
        assert deep_merge({"l": ["a", "b", "c"]}, {"-l": ["b"]}) == {"l": ["a", "c"]}
        assert deep_merge({}, {"-l": ["b"]}) == {}

    def test_none_removes_key(self):
        """Test None removes a key."""
        assert deep_merge({"a": 1, "b": 2}, {"a": None}) == {"b": 2}


class TestNestedValues:
    """Tests for nested key helpers."""

    def test_set_creates_parents(self):
        """Test dotted assignment creates intermediate dicts."""
        assert set_nested_value({}, "a.b.c", 1) == {"a": {"b": {"c": 1}}}


class TestEnvOverrides:
    """Tests for environment variable overrides."""

    @pytest.mark.parametrize(
        "raw,parsed",
        [
            ("true", True),
            ("off", False),
            ("42", 42),
            ("-3", -3),
            ("1.5", 1.5),
            ("a.com, b.com", ["a.com", "b.com"]),
            ("allow_list", "allow_list"),
        ],
    )
    def test_value_parsing(self, raw, parsed):
        """Test value types are inferred."""
        assert _parse_env_value(raw) == parsed

    def test_double_underscore_paths(self):
        """Test section and key are split on the double underscore."""
        environ = {
            "PINCER_POLICY__TIMEOUT_SECONDS": "10",
            "PINCER_POLICY__ALLOWED_HOSTS": "example.com,api.example.com",
            "PINCER_HOME": "/tmp/home",
            "PINCER_NOSECTION": "x",
            "OTHER__VAR": "y",
        }

        config = apply_env_overrides({"policy": {"timeout_seconds": 30}}, environ)

        assert config == {
            "policy": {"timeout_seconds": 10, "allowed_hosts": ["example.com", "api.example.com"]}
        }


class TestLoadConfig:
    """Tests for loading configuration files."""

    def test_missing_yaml_is_empty(self, temp_dir):
        """Test a missing file yields an empty mapping."""
        assert load_yaml_file(temp_dir / "absent.yaml") == {}

    def test_invalid_yaml(self, temp_dir):
        """Test invalid YAML raises ConfigurationError."""
        path = temp_dir / "bad.yaml"
        path.write_text("policy: [unclosed")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_yaml_file(path)

    def test_non_mapping(self, temp_dir):
        """Test a top-level list is rejected."""
        path = temp_dir / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_yaml_file(path)

    def test_defaults_only(self, mock_pincer_home):
        """Test loading with no files gives the defaults."""
        config = load_config(skip_project=True, skip_env=True)

        assert config == Config()

    def test_layers(self, mock_pincer_home, mock_project_dir, monkeypatch):
        """Test global, project and environment layers in priority order."""
        (mock_pincer_home / "config.yaml").write_text(
            "policy:\n  timeout_seconds: 60\n  allowed_hosts: [a.com]\nsandbox:\n  mode: process\n"
        )
        (mock_project_dir / ".pincer" / "config.yaml").write_text(
            "policy:\n  '+allowed_hosts': [b.com]\n  network_access: allow_list\n"
        )
        monkeypatch.setenv("PINCER_POLICY__TIMEOUT_SECONDS", "5")

        config = load_config(project_path=mock_project_dir)

        assert config.policy.timeout_seconds == 5
        assert config.policy.allowed_hosts == ["a.com", "b.com"]
        assert config.policy.network_access == "allow_list"

    def test_project_found_from_subdirectory(self, mock_pincer_home, mock_project_dir):
        """Test the project file is found walking up from a subdirectory."""
        (mock_project_dir / ".pincer" / "config.yaml").write_text("agent:\n  id: builder\n")
        nested = mock_project_dir / "src" / "pkg"
        nested.mkdir(parents=True)

        config = load_config(project_path=nested, skip_env=True)

        assert config.agent.id == "builder"

    def test_validation_error(self, mock_pincer_home):
        """Test invalid values raise ConfigurationError."""
        (mock_pincer_home / "config.yaml").write_text("sandbox:\n  mode: vm\n")

        with pytest.raises(ConfigurationError, match="validation failed"):
            load_config(skip_project=True, skip_env=True)
