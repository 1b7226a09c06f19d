from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

from medtrack.core import config, env_loader


def test_env_flag_parsing(monkeypatch) -> None:
    monkeypatch.setenv("MEDTRACK_TEST_FLAG", " Yes ")
    assert config._get_env_flag("MEDTRACK_TEST_FLAG") is True
    monkeypatch.setenv("MEDTRACK_TEST_FLAG", "off")
    assert config._get_env_flag("MEDTRACK_TEST_FLAG", default=True) is False
    monkeypatch.setenv("MEDTRACK_TEST_FLAG", "peut-être")
    assert config._get_env_flag("MEDTRACK_TEST_FLAG", default=True) is True


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("DISPENSARY_EXPIRY_DAYS", "zero")
    monkeypatch.setenv("ADVISORY_EXPIRY_DAYS", "0")
    monkeypatch.setenv("DB_BUSY_TIMEOUT", "-5")
    monkeypatch.setenv("CLINIC_TIMEZONE", "Mars/Olympus")
    monkeypatch.setenv("LOG_LEVEL", "verbose")

    settings = config.load_settings()

    assert settings.DISPENSARY_EXPIRY_DAYS == 7
    assert settings.ADVISORY_EXPIRY_DAYS == 30
    assert settings.DB_BUSY_TIMEOUT == 30.0
    assert settings.CLINIC_TIMEZONE == "UTC"
    assert settings.LOG_LEVEL == "info"


def test_thresholds_are_read_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("DISPENSARY_EXPIRY_DAYS", "10")
    monkeypatch.setenv("ADVISORY_EXPIRY_DAYS", "45")
    monkeypatch.setenv("LOW_STOCK_THRESHOLD", "30")
    monkeypatch.setenv("CRITICAL_STOCK_THRESHOLD", "5")
    monkeypatch.setenv("CLINIC_TIMEZONE", "America/Sao_Paulo")

    settings = config.load_settings()

    assert settings.DISPENSARY_EXPIRY_DAYS == 10
    assert settings.ADVISORY_EXPIRY_DAYS == 45
    assert settings.LOW_STOCK_THRESHOLD == 30
    assert settings.CRITICAL_STOCK_THRESHOLD == 5
    assert settings.timezone.key == "America/Sao_Paulo"


def test_env_file_does_not_override_existing_variables(tmp_path: Path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# commentaire\n"
        "export MEDTRACK_FROM_FILE='depuis le fichier'\n"
        "MEDTRACK_ALREADY_SET=fichier\n"
        "ligne invalide\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("MEDTRACK_ALREADY_SET", "environnement")
    monkeypatch.delenv("MEDTRACK_FROM_FILE", raising=False)
    monkeypatch.setattr(env_loader, "_loaded", False)

    added = env_loader.load_env(env_file)

    assert os.environ["MEDTRACK_FROM_FILE"] == "depuis le fichier"
    assert os.environ["MEDTRACK_ALREADY_SET"] == "environnement"
    assert added == ["MEDTRACK_FROM_FILE"]
    monkeypatch.delenv("MEDTRACK_FROM_FILE")


def test_parse_env_line() -> None:
    assert env_loader.parse_env_line("LOG_LEVEL = debug") == ("LOG_LEVEL", "debug")
    assert env_loader.parse_env_line('export CLINIC_TIMEZONE="Europe/Paris"') == (
        "CLINIC_TIMEZONE",
        "Europe/Paris",
    )
    assert env_loader.parse_env_line("# LOG_LEVEL=debug") is None
    assert env_loader.parse_env_line("=valeur") is None
    assert env_loader.parse_env_line("sans egal") is None


def test_critical_threshold_above_low_falls_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("LOW_STOCK_THRESHOLD", "5")
    monkeypatch.setenv("CRITICAL_STOCK_THRESHOLD", "15")

    settings = config.load_settings()

    assert settings.LOW_STOCK_THRESHOLD == 20
    assert settings.CRITICAL_STOCK_THRESHOLD == 10


def test_to_clinic_time_converts_aware_values_only() -> None:
    aware = datetime(2026, 10, 19, 10, 0, tzinfo=timezone(timedelta(hours=2)))
    naive = datetime(2026, 10, 19, 10, 0)

    assert config.to_clinic_time(aware) == datetime(2026, 10, 19, 8, 0)
    assert config.to_clinic_time(naive) is naive
