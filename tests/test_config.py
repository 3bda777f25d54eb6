"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from trustscore.common import ConfigurationError
from trustscore.config import TrustConfig, build_config, load_config, load_rules

REPO_ROOT = Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep TRUST_* variables from the host out of the tests."""
    for name in TrustConfig.model_fields:
        monkeypatch.delenv(f"TRUST_{name.upper()}", raising=False)


# ==================== TrustConfig Tests ====================


def test_defaults():
    """Test defaults match the documented scoring model."""
    config = TrustConfig()

    assert config.domain_weight == 0.4
    assert config.community_weight == 0.6
    assert config.spam_penalty == 30
    assert config.misleading_penalty == 25
    assert config.scam_penalty == 40
    assert config.confidence_floor_ratings == 5
    assert config.cache_ttl_days == 7
    assert config.max_blacklist_penalty == 50
    assert config.threat_penalties == {"malware": 50.0, "phishing": 45.0, "unwanted": 30.0}


def test_weights_must_sum_to_one():
    """Test inconsistent blend weights are fatal."""
    with pytest.raises(ConfigurationError) as exc_info:
        build_config({"domain_weight": 0.5, "community_weight": 0.6})

    assert "sum to 1.0" in str(exc_info.value)


@pytest.mark.parametrize(
    "values,field",
    [
        ({"cache_ttl_days": 0}, "cache_ttl_days"),
        ({"max_blacklist_penalty": 150}, "max_blacklist_penalty"),
        ({"confidence_floor_ratings": 0}, "confidence_floor_ratings"),
        ({"aggregation_workers": 0}, "aggregation_workers"),
    ],
)
def test_out_of_range_values_are_rejected(values, field):
    """Test out-of-range values raise ConfigurationError naming the field."""
    with pytest.raises(ConfigurationError) as exc_info:
        build_config(values)

    assert exc_info.value.context["field"] == field


def test_unknown_keys_are_rejected():
    """Test typos in configuration keys are not silently ignored."""
    with pytest.raises(ConfigurationError):
        build_config({"cache_ttl_dayz": 3})


def test_negative_threat_penalty_rejected():
    """Test threat penalties must not reward threats."""
    with pytest.raises(ConfigurationError):
        build_config({"threat_penalties": {"malware": -10}})


def test_fingerprint_excludes_runtime_settings():
    """Test fingerprint only changes with scoring values."""
    base = TrustConfig()

    assert base.fingerprint() == TrustConfig(aggregation_workers=4).fingerprint()
    assert base.fingerprint() != TrustConfig(spam_penalty=20).fingerprint()


# ==================== load_config Tests ====================


def test_load_config_from_sectioned_yaml(tmp_path):
    """Test YAML sections are flattened into the model."""
    path = tmp_path / "trust.yaml"
    path.write_text(
        "scoring:\n"
        "  domain_weight: 0.5\n"
        "  community_weight: 0.5\n"
        "cache:\n"
        "  cache_ttl_days: 3\n"
    )

    config = load_config(str(path))

    assert config.domain_weight == 0.5
    assert config.community_weight == 0.5
    assert config.cache_ttl_days == 3


def test_load_config_env_overrides_file(tmp_path, monkeypatch):
    """Test TRUST_<FIELD> environment variables win over the file."""
    path = tmp_path / "trust.yaml"
    path.write_text("cache:\n  cache_ttl_days: 3\n")
    monkeypatch.setenv("TRUST_CACHE_TTL_DAYS", "14")

    config = load_config(str(path))

    assert config.cache_ttl_days == 14


def test_load_config_missing_file():
    """Test an explicit but missing file is fatal."""
    with pytest.raises(ConfigurationError) as exc_info:
        load_config("/nonexistent/trust.yaml")

    assert exc_info.value.context["config_path"] == "/nonexistent/trust.yaml"


def test_load_config_invalid_yaml(tmp_path):
    """Test unparsable YAML is fatal."""
    path = tmp_path / "trust.yaml"
    path.write_text("scoring: [unclosed\n")

    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_shipped_config_is_valid():
    """Test the repository's configuration file loads cleanly."""
    config = load_config(str(REPO_ROOT / "config" / "trust.yaml"))

    assert config == TrustConfig()


# ==================== load_rules Tests ====================


def test_shipped_rules_load():
    """Test the seed rules file parses and keeps file order as priority."""
    blacklist, content_rules = load_rules(str(REPO_ROOT / "config" / "rules.yaml"))

    assert len(blacklist) == 5
    assert {rule.category for rule in blacklist} == {"phishing", "malware", "spam", "scam"}
    assert len(content_rules) == 10
    assert [rule.priority for rule in content_rules] == list(range(10))
    assert content_rules[0].domain == "youtube.com"


def test_load_rules_invalid_regex(tmp_path):
    """Test a content rule with an invalid regex is fatal."""
    path = tmp_path / "rules.yaml"
    path.write_text(
        "content_rules:\n"
        "  - domain: example.com\n"
        "    content_type: article\n"
        "    url_pattern: '(unclosed'\n"
    )

    with pytest.raises(ConfigurationError):
        load_rules(str(path))


def test_load_rules_missing_file():
    """Test a missing rules file is fatal."""
    with pytest.raises(ConfigurationError):
        load_rules("/nonexistent/rules.yaml")
