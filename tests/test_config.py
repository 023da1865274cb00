import pytest

from link_checker.core.config import CheckerConfig, load_checker_config
from link_checker.resilience import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    for key in CheckerConfig.model_fields:
        monkeypatch.delenv(f"LINK_CHECKER_{key.upper()}", raising=False)


def test_defaults():
    config = load_checker_config()
    assert config.index_file == "README.md"
    assert config.clean_url is False
    assert config.max_retries == 5
    assert config.retry_delay == 3.0
    assert config.anchor_similarity == 0.9
    assert config.ignored_directories == ["node_modules"]
    assert config.github_token is None


def test_yaml_file_with_section(tmp_path):
    path = tmp_path / "links.yaml"
    path.write_text(
        "link_checker:\n"
        "  clean_url: true\n"
        "  index_file: index.md\n"
        "  local_alternatives:\n"
        "    - pattern: '^https://docs\\.example\\.com/'\n"
        "      reason: Use the local page.\n"
    )
    config = load_checker_config(path)
    assert config.clean_url is True
    assert config.index_file == "index.md"
    assert config.local_alternatives[0].reason == "Use the local page."


def test_env_overrides_file_and_cli_overrides_env(tmp_path, monkeypatch):
    path = tmp_path / "links.yaml"
    path.write_text("max_retries: 2\nclean_url: false\n")
    monkeypatch.setenv("LINK_CHECKER_MAX_RETRIES", "7")
    monkeypatch.setenv("LINK_CHECKER_CLEAN_URL", "true")
    monkeypatch.setenv("LINK_CHECKER_IGNORED_DIRECTORIES", "node_modules, vendor")

    config = load_checker_config(path, overrides={"clean_url": False, "fix": None})
    assert config.max_retries == 7
    assert config.clean_url is False
    assert config.fix is False
    assert config.ignored_directories == ["node_modules", "vendor"]


def test_github_token_from_environment(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_fromenvironment")
    assert load_checker_config().github_token == "ghp_fromenvironment"


def test_numeric_looking_env_values_stay_text_for_string_fields(monkeypatch):
    monkeypatch.setenv("LINK_CHECKER_GITHUB_TOKEN", "1234567890")
    monkeypatch.setenv("LINK_CHECKER_INDEX_FILE", "2024.md")
    monkeypatch.setenv("LINK_CHECKER_TIMEOUT", "12.5")
    config = load_checker_config()
    assert config.github_token == "1234567890"
    assert config.index_file == "2024.md"
    assert config.timeout == 12.5


def test_api_root_trailing_slash_is_stripped():
    config = load_checker_config(overrides={"github_api_root": "https://ghe.example.com/api/v3/"})
    assert config.github_api_root == "https://ghe.example.com/api/v3"


def test_invalid_values_raise_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_checker_config(overrides={"index_file": "index.html"})
    with pytest.raises(ConfigurationError):
        load_checker_config(overrides={"anchor_similarity": 1.5})
    with pytest.raises(ConfigurationError):
        load_checker_config(tmp_path / "missing.yaml")

    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n")
    with pytest.raises(ConfigurationError):
        load_checker_config(bad)
