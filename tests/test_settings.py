import logging
from pathlib import Path

import pytest

from finance_tracker.core import settings


def test_read_config_file_parses_flat_values(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        "\n".join(
            [
                "# finance tracker",
                "DEFAULT_TIMEZONE: Europe/Berlin  # local reports",
                'JWT_SECRET: "abc#123"',
                "WEEK_START: 'sunday'",
                "EMPTY:",
                "not a pair",
            ]
        ),
        encoding="utf-8",
    )

    assert settings.read_config_file(str(config)) == {
        "DEFAULT_TIMEZONE": "Europe/Berlin",
        "JWT_SECRET": "abc#123",
        "WEEK_START": "sunday",
    }


def test_read_config_file_missing_path() -> None:
    assert settings.read_config_file(None) == {}
    assert settings.read_config_file("/does/not/exist.yaml") == {}


def test_get_env_int_falls_back(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    monkeypatch.setenv("TRACKER_TEST_INT", "soon")
    with caplog.at_level(logging.WARNING):
        assert settings.get_env_int("TRACKER_TEST_INT", 7) == 7
    assert "Invalid TRACKER_TEST_INT" in caplog.text

    monkeypatch.setenv("TRACKER_TEST_INT", "0")
    assert settings.get_env_int("TRACKER_TEST_INT", 7, min_value=1) == 7

    monkeypatch.setenv("TRACKER_TEST_INT", "12")
    assert settings.get_env_int("TRACKER_TEST_INT", 7, min_value=1) == 12


def test_get_env_list_deduplicates(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRACKER_TEST_LIST", " http://a , http://b,,http://a ")
    assert settings.get_env_list("TRACKER_TEST_LIST") == ["http://a", "http://b"]

    monkeypatch.delenv("TRACKER_TEST_LIST")
    assert settings.get_env_list("TRACKER_TEST_LIST", "http://c") == ["http://c"]


@pytest.mark.parametrize(
    ("name", "value", "expected"),
    [
        ("JWT_SECRET", "supersecret", "su...et"),
        ("JWT_SECRET", "abc", "****"),
        ("DEFAULT_TIMEZONE", "Europe/Berlin", "Europe/Berlin"),
        ("DATABASE_URL", "postgresql://app:hunter2@db:5432/money", "postgresql://app:****@db:5432/money"),
        ("DATABASE_URL", "sqlite:///data/finance.db", "sqlite:///data/finance.db"),
    ],
)
def test_mask_env_value(name: str, value: str, expected: str) -> None:
    assert settings._mask_env_value(name, value) == expected


def test_log_environment_masks_secret(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    monkeypatch.setenv("JWT_SECRET", "very-private-value")
    with caplog.at_level(logging.INFO):
        settings.log_environment()
    assert "very-private-value" not in caplog.text
    assert "JWT_SECRET=ve...ue" in caplog.text
    assert "[ENV] Config file:" in caplog.text
