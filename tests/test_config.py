"""Tests for AppConfig."""

from dataclasses import FrozenInstanceError

import pytest

from wren.config import AppConfig


class TestDefaults:
    def test_defaults(self) -> None:
        config = AppConfig()
        assert config.name == "Wren"
        assert config.debug is False
        assert config.port == 8000
        assert config.secret_key == ""
        assert config.database is None
        assert config.session_cookie == "wren_session"

    def test_frozen(self) -> None:
        with pytest.raises(FrozenInstanceError):
            AppConfig().debug = True  # type: ignore[misc]

    def test_environment_flags(self) -> None:
        assert AppConfig().is_production
        local = AppConfig(env="local")
        assert local.is_local
        assert not local.is_production


class TestFromEnv:
    def test_reads_prefixed_variables(self) -> None:
        config = AppConfig.from_env({
            "APP_NAME": "Shop",
            "APP_DEBUG": "true",
            "APP_PORT": "9000",
            "APP_SECRET_KEY": "k",
            "APP_DATABASE": "shop.db",
            "UNRELATED": "x",
        })
        assert config.name == "Shop"
        assert config.debug is True
        assert config.port == 9000
        assert config.secret_key == "k"
        assert config.database == "shop.db"

    @pytest.mark.parametrize(("raw", "expected"), [("1", True), ("yes", True), ("On", True), ("0", False)])
    def test_bool_coercion(self, raw: str, expected: bool) -> None:
        assert AppConfig.from_env({"APP_DEBUG": raw}).debug is expected

    def test_custom_prefix(self) -> None:
        assert AppConfig.from_env({"SHOP_PORT": "81"}, prefix="SHOP_").port == 81

    def test_empty_optional_is_none(self) -> None:
        assert AppConfig.from_env({"APP_DATABASE": ""}).database is None

    def test_bad_int(self) -> None:
        with pytest.raises(ValueError):
            AppConfig.from_env({"APP_PORT": "eighty"})

    def test_os_environ_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", "local")
        assert AppConfig.from_env().is_local
