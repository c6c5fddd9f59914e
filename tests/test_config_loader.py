"""Tests for loading RequestOptions from YAML.

Tests cover:
- Plain YAML loading and empty files
- ${ENV_VAR} substitution in nested values
- Error reporting for missing files, bad YAML and invalid options
"""

from pathlib import Path

import pytest

from api_courier.config_loader import ConfigError, load_request_options, options_from_mapping
from api_courier.errors import ApiCourierError
from api_courier.query_string import flat_query_string_normalizer


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "options.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadRequestOptions:
    def test_loads_options(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            """
base_uri: http://api.foo.com
format: json
headers:
  Accept: application/json
default_params:
  api_key: abc
limit: 3
query_string_normalizer: flat
""",
        )
        options = load_request_options(path)

        assert options.base_uri == "http://api.foo.com"
        assert options.format == "json"
        assert options.headers == {"Accept": "application/json"}
        assert options.default_params == {"api_key": "abc"}
        assert options.limit == 3
        assert options.query_string_normalizer is flat_query_string_normalizer

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        options = load_request_options(_write(tmp_path, ""))
        assert options.limit == 5
        assert options.headers == {}

    def test_env_vars_substituted(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("API_USER", "foobar")
        monkeypatch.setenv("API_PASS", "secret")
        path = _write(
            tmp_path,
            """
basic_auth:
  username: ${API_USER}
  password: ${API_PASS}
headers:
  X-Token: Bearer ${API_PASS}
""",
        )
        options = load_request_options(path)

        assert options.basic_auth == {"username": "foobar", "password": "secret"}
        assert options.headers == {"X-Token": "Bearer secret"}

    def test_env_vars_in_lists(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("TAG", "blue")
        options = load_request_options(_write(tmp_path, "query:\n  tags: [red, '${TAG}']\n"))
        assert options.query == {"tags": ["red", "blue"]}


class TestLoadRequestOptionsErrors:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Config file not found"):
            load_request_options(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_request_options(_write(tmp_path, "headers: [unclosed"))

    def test_non_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="must be a YAML mapping"):
            load_request_options(_write(tmp_path, "- a\n- b\n"))

    def test_unset_env_var(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.delenv("COURIER_UNSET_VAR", raising=False)
        with pytest.raises(ConfigError, match="Environment variable 'COURIER_UNSET_VAR' is not set"):
            load_request_options(_write(tmp_path, "base_uri: ${COURIER_UNSET_VAR}\n"))

    def test_unknown_option(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid request options"):
            load_request_options(_write(tmp_path, "retries: 3\n"))

    def test_config_error_is_library_error(self) -> None:
        assert issubclass(ConfigError, ApiCourierError)


class TestOptionsFromMapping:
    def test_valid_mapping(self) -> None:
        assert options_from_mapping({"format": "xml"}).format == "xml"

    def test_invalid_normalizer_name(self) -> None:
        with pytest.raises(ConfigError, match="Unknown query_string_normalizer"):
            options_from_mapping({"query_string_normalizer": "php"})
