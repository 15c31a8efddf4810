"""Tests for YAML config loading and the catalog context built from it."""

import logging
from unittest.mock import MagicMock

import pytest

from catalog.context import CatalogContext
from catalog.gateway import CatalogGateway
from common.logging_utils import Timer, configure_logging, extra_context, is_debug_enabled
from constants import (
    CatalogConfigError,
    Constants,
    InstallScopes,
    _load_yaml_config,
    apply_config_overrides,
)


@pytest.fixture(autouse=True)
def restore_constants():
    saved = {
        "SEARCH_RESULT_LIMIT": Constants.SEARCH_RESULT_LIMIT,
        "DEFAULT_INSTALL_SCOPE": Constants.DEFAULT_INSTALL_SCOPE,
        "LOG_LEVEL": Constants.LOG_LEVEL,
    }
    yield
    for key, value in saved.items():
        setattr(Constants, key, value)


class TestApplyConfigOverrides:
    """Mapping config keys onto Constants."""

    def test_overrides_known_keys(self):
        apply_config_overrides({
            "search": {"result_limit": 50},
            "operations": {"scope": "User"},
            "logging": {"level": "debug"},
        })
        assert Constants.SEARCH_RESULT_LIMIT == 50
        assert Constants.DEFAULT_INSTALL_SCOPE == "user"
        assert Constants.LOG_LEVEL == "DEBUG"

    def test_empty_config_keeps_defaults(self):
        apply_config_overrides({})
        assert Constants.SEARCH_RESULT_LIMIT == 25
        assert Constants.DEFAULT_INSTALL_SCOPE == "any"

    @pytest.mark.parametrize(
        "cfg",
        [
            {"search": {"result_limit": 0}},
            {"search": {"result_limit": "many"}},
            {"operations": {"scope": "machine-wide"}},
            {"logging": {"level": "LOUD"}},
        ],
    )
    def test_invalid_values_raise(self, cfg):
        with pytest.raises(CatalogConfigError):
            apply_config_overrides(cfg)


class TestLoadYamlConfig:
    """Config file discovery."""

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("search:\n  result_limit: 10\n", encoding="utf-8")
        assert _load_yaml_config(str(path)) == {"search": {"result_limit": 10}}

    def test_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / "scout.yaml"
        path.write_text("operations:\n  scope: system\n", encoding="utf-8")
        monkeypatch.setenv(Constants.ENV_CONFIG_PATH, str(path))
        assert _load_yaml_config() == {"operations": {"scope": "system"}}

    def test_missing_files_give_empty_config(self, tmp_path, monkeypatch):
        monkeypatch.delenv(Constants.ENV_CONFIG_PATH, raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert _load_yaml_config(str(tmp_path / "absent.yml")) == {}

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(CatalogConfigError):
            _load_yaml_config(str(path))


class TestCatalogContextFromConfig:
    """The context snapshots settings at creation."""

    def test_from_mapping(self):
        gateway = MagicMock(spec=CatalogGateway)
        context = CatalogContext.from_config(
            gateway,
            config={"search": {"result_limit": 5}, "operations": {"scope": "user"}},
        )
        assert context.gateway is gateway
        assert context.result_limit == 5
        assert context.install_scope is InstallScopes.USER

        Constants.SEARCH_RESULT_LIMIT = 99
        assert context.result_limit == 5
        context.shutdown()

    def test_from_file(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("search:\n  result_limit: 7\n", encoding="utf-8")
        context = CatalogContext.from_config(MagicMock(spec=CatalogGateway), config_path=str(path))
        assert context.result_limit == 7
        assert context.install_scope is InstallScopes.ANY


class TestLoggingUtils:
    """Structured logging helpers."""

    def test_extra_context_drops_none(self):
        assert extra_context(event="x", outcome=None, count=0) == {"event": "x", "count": 0}

    def test_configure_logging_honours_env(self, monkeypatch):
        root = logging.getLogger()
        previous = root.level
        monkeypatch.setenv(Constants.ENV_LOG_LEVEL, "debug")
        try:
            configure_logging()
            assert root.level == logging.DEBUG
            assert is_debug_enabled(logging.getLogger("search.coordinator"))
            configure_logging("warning")
            assert root.level == logging.WARNING
        finally:
            root.setLevel(previous)

    def test_timer_measures(self):
        with Timer() as t:
            pass
        assert t.duration_ms() >= 0
