from __future__ import annotations

from pathlib import Path

import pytest

from console_enhancer.config import (
    DEFAULT_LOG_PATH,
    EMITTING_LEVELS,
    LevelFilter,
    LogLevel,
    _normalize_config,
    config_from_env,
    get_default_config,
    merge_config,
    resolve_level_name,
)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("ERROR", LogLevel.ERROR),
        ("WARN", LogLevel.WARN),
        ("INFO", LogLevel.INFO),
        ("DEBUG", LogLevel.DEBUG),
        ("TRACE", LogLevel.TRACE),
        ("VERBOSE", LogLevel.TRACE),
        ("ALL", LogLevel.ALL),
        (LogLevel.WARN, LogLevel.WARN),
    ],
)
def test_resolve_level_name_known_names(name, expected) -> None:
    assert resolve_level_name(name) is expected


@pytest.mark.parametrize("name", ["info", "Warn", "WARNING", "", "NOPE", None, 3])
def test_resolve_level_name_rejects_unknown_and_wrong_case(name) -> None:
    assert resolve_level_name(name) is None


def test_levels_are_ordered_most_severe_first() -> None:
    assert [int(level) for level in LogLevel] == [0, 1, 2, 3, 4, 5]
    assert LogLevel.ALL not in EMITTING_LEVELS


def test_level_filter_defaults_to_all() -> None:
    level_filter = LevelFilter()

    assert level_filter.threshold is LogLevel.ALL
    assert all(level_filter.should_emit(level) for level in EMITTING_LEVELS)


def test_level_filter_emits_levels_at_or_above_threshold() -> None:
    level_filter = LevelFilter()
    level_filter.configure("INFO")

    assert level_filter.should_emit(LogLevel.ERROR)
    assert level_filter.should_emit(LogLevel.WARN)
    assert level_filter.should_emit(LogLevel.INFO)
    assert not level_filter.should_emit(LogLevel.DEBUG)
    assert not level_filter.should_emit(LogLevel.TRACE)


def test_level_filter_verbose_alias_matches_trace() -> None:
    via_alias, via_name = LevelFilter(), LevelFilter()
    via_alias.configure("VERBOSE")
    via_name.configure("TRACE")

    for level in LogLevel:
        assert via_alias.should_emit(level) == via_name.should_emit(level)


@pytest.mark.parametrize("bad_name", ["bogus", "info", None])
def test_level_filter_ignores_unknown_names(bad_name) -> None:
    level_filter = LevelFilter()
    level_filter.configure("WARN")

    assert level_filter.configure(bad_name) is LogLevel.WARN
    assert level_filter.configure(bad_name) is LogLevel.WARN


def test_default_config_values() -> None:
    config = get_default_config()

    assert config["level"] == "ALL"
    assert config["file"] is False
    assert config["filepath"] == DEFAULT_LOG_PATH
    assert config["include_date"] is False
    assert config["path_replace"] is None
    assert config["source_info"] is None


def test_normalize_config_maps_legacy_keys() -> None:
    normalized = _normalize_config(
        {"includeDate": True, "pathReplace": "src_", "color": "always"}
    )

    assert normalized == {"include_date": True, "path_replace": "src_"}


def test_normalize_config_prefers_current_key_over_legacy() -> None:
    normalized = _normalize_config({"includeDate": True, "include_date": False})

    assert normalized == {"include_date": False}


def test_normalize_config_joins_legacy_path_and_filename() -> None:
    assert _normalize_config({"path": "var/log", "filename": "app.log"}) == {
        "filepath": Path("var/log") / "app.log"
    }
    assert _normalize_config({"filename": "app.log"}) == {
        "filepath": Path("logs") / "app.log"
    }


def test_merge_config_substitutes_default_filepath() -> None:
    merged = merge_config({"file": True, "filepath": None})

    assert merged["file"] is True
    assert merged["filepath"] == DEFAULT_LOG_PATH


def test_config_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CONSOLE_ENHANCER_LEVEL", "DEBUG")
    monkeypatch.setenv("CONSOLE_ENHANCER_FILE", "yes")
    monkeypatch.setenv("CONSOLE_ENHANCER_FILEPATH", str(tmp_path / "out.log"))
    monkeypatch.setenv("CONSOLE_ENHANCER_INCLUDE_DATE", "0")
    monkeypatch.delenv("CONSOLE_ENHANCER_PATH_REPLACE", raising=False)

    config = config_from_env()

    assert config == {
        "level": "DEBUG",
        "file": True,
        "filepath": tmp_path / "out.log",
        "include_date": False,
    }


def test_config_from_env_reads_dotenv_file(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    for suffix in ("LEVEL", "FILE", "FILEPATH", "INCLUDE_DATE", "PATH_REPLACE"):
        monkeypatch.delenv(f"APP_LOG_{suffix}", raising=False)
    (tmp_path / ".env").write_text("APP_LOG_LEVEL=WARN\nAPP_LOG_PATH_REPLACE=svc_\n")
    monkeypatch.chdir(tmp_path)

    config = config_from_env(prefix="APP_LOG_")

    assert config == {"level": "WARN", "path_replace": "svc_"}
