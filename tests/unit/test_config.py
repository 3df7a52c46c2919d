"""Tests for sweetconnect.config -- schema models and configuration loading."""

from __future__ import annotations

import os
import tempfile

import pytest
import yaml

from sweetconnect.app import build_app
from sweetconnect.config.loader import apply_env_overrides, load_config, merge_configs
from sweetconnect.config.schema import AppConfig, StoreConfig
from sweetconnect.identity.roles import Role


# ======================================================================
# Defaults
# ======================================================================


class TestAppConfigDefaults:
    def test_server(self) -> None:
        cfg = AppConfig()
        assert cfg.server.host == "0.0.0.0"
        assert cfg.server.port == 8765

    def test_store(self) -> None:
        cfg = AppConfig()
        assert cfg.store.backend == "sqlite"
        assert cfg.store.history_limit == 50

    def test_mail_defaults_to_log_transport(self) -> None:
        assert AppConfig().mail.transport == "log"

    def test_delivery_mode(self) -> None:
        assert AppConfig().delivery.mode == "broadcast"

    def test_seed_actors(self) -> None:
        seeds = AppConfig().identity.seed_actors
        assert [(s.actor_id, s.role) for s in seeds] == [
            ("admin", Role.ADMIN),
            ("shrreya", Role.CORRESPONDENT),
        ]

    def test_history_limit_capped(self) -> None:
        assert StoreConfig(history_limit=500).history_limit == 50
        assert StoreConfig(history_limit=0).history_limit == 1


# ======================================================================
# load_config
# ======================================================================


class TestLoadConfig:
    def test_none_path_returns_defaults(self) -> None:
        assert load_config(None) == AppConfig()

    def test_missing_file_returns_defaults(self) -> None:
        assert load_config("/nonexistent/sweetconnect.yaml") == AppConfig()

    def test_load_from_yaml(self) -> None:
        data = {
            "server": {"port": 9000},
            "delivery": {"mode": "targeted"},
            "identity": {
                "collective_name": "Crew",
                "seed_actors": [{"email": "s@example.com", "role": "correspondent"}],
            },
        }
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump(data, f)
            path = f.name
        try:
            cfg = load_config(path)
        finally:
            os.unlink(path)
        assert cfg.server.port == 9000
        assert cfg.delivery.mode == "targeted"
        assert cfg.identity.collective_name == "Crew"
        assert cfg.identity.seed_actors[0].role is Role.CORRESPONDENT

    def test_invalid_yaml_returns_defaults(self) -> None:
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write("server: [unclosed\n")
            path = f.name
        try:
            assert load_config(path) == AppConfig()
        finally:
            os.unlink(path)

    def test_invalid_values_return_defaults(self) -> None:
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump({"delivery": {"mode": "carrier-pigeon"}}, f)
            path = f.name
        try:
            assert load_config(path) == AppConfig()
        finally:
            os.unlink(path)

    def test_non_dict_returns_defaults(self) -> None:
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write("- just\n- a list\n")
            path = f.name
        try:
            assert load_config(path) == AppConfig()
        finally:
            os.unlink(path)


# ======================================================================
# merge_configs / env overrides
# ======================================================================


class TestMergeConfigs:
    def test_nested_override(self) -> None:
        merged = merge_configs(AppConfig(), {"store": {"backend": "memory"}})
        assert merged.store.backend == "memory"
        assert merged.store.path == "sweetconnect.db"

    def test_invalid_override_keeps_base(self) -> None:
        base = AppConfig()
        assert merge_configs(base, {"store": {"backend": "postgres"}}) is base


class TestEnvOverrides:
    def test_secrets_from_environment(self) -> None:
        cfg = apply_env_overrides(
            AppConfig(),
            {"SWEETCONNECT_SMTP_USER": "bot", "SWEETCONNECT_SMTP_PASSWORD": "pw"},
        )
        assert cfg.mail.smtp_user == "bot"
        assert cfg.mail.smtp_password == "pw"

    def test_no_overrides_returns_same_object(self) -> None:
        base = AppConfig()
        assert apply_env_overrides(base, {}) is base


# ======================================================================
# build_app seeding
# ======================================================================


class TestBuildApp:
    def test_seeds_directory(self) -> None:
        app = build_app(AppConfig(store=StoreConfig(backend="memory")))
        assert app.directory.get("admin").role is Role.ADMIN
        assert app.directory.get("shrreya").role is Role.CORRESPONDENT

    def test_conflicting_seed_is_skipped(self) -> None:
        cfg = AppConfig.model_validate(
            {
                "store": {"backend": "memory"},
                "identity": {
                    "seed_actors": [
                        {"email": "a@example.com", "role": "correspondent", "actor_id": "a"},
                        {"email": "b@example.com", "role": "correspondent", "actor_id": "b"},
                    ]
                },
            }
        )
        app = build_app(cfg)
        assert "a" in app.directory
        assert "b" not in app.directory

    def test_targeted_mode_reaches_hub(self) -> None:
        cfg = merge_configs(AppConfig(), {"delivery": {"mode": "targeted"}, "store": {"backend": "memory"}})
        assert build_app(cfg).hub.mode.value == "targeted"
