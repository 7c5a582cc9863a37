from __future__ import annotations

import logging
from pathlib import Path  # noqa: TC003

import pytest

from quarry.config import (
    DEFAULT_BATCH_SIZE,
    ConfigurationError,
    ImportConfig,
    MissingConfigurationError,
    SourceFileError,
    UnknownCategoryError,
    configure_logging,
    get_import_config,
    optional_bool_env_var,
    optional_int_env_var,
    require_env_vars,
)
from quarry.config import storage


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_raises_when_any_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("BLANK_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR", "BLANK_VAR"])

    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)


def test_optional_int_env_var(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUARRY_TEST_INT", " 25 ")
    assert optional_int_env_var("QUARRY_TEST_INT") == 25

    monkeypatch.setenv("QUARRY_TEST_INT", "")
    assert optional_int_env_var("QUARRY_TEST_INT") is None

    monkeypatch.setenv("QUARRY_TEST_INT", "many")
    with pytest.raises(ConfigurationError):
        optional_int_env_var("QUARRY_TEST_INT")


def test_import_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("QUARRY_BATCH_SIZE", raising=False)
    monkeypatch.delenv("QUARRY_IMPORT_ACTOR", raising=False)

    config = get_import_config()

    assert config.batch_size == DEFAULT_BATCH_SIZE
    assert config.import_actor == "Admin"
    assert config.source_paths == ()
    assert config.includes("family")


def test_import_config_prefers_arguments_over_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("QUARRY_BATCH_SIZE", "40")
    monkeypatch.setenv("QUARRY_IMPORT_ACTOR", "  Jane Doe ")

    from_env = get_import_config()
    explicit = get_import_config(batch_size=5, import_actor="John Roe")

    assert from_env.batch_size == 40
    assert from_env.import_actor == "Jane Doe"
    assert explicit.batch_size == 5
    assert explicit.import_actor == "John Roe"


@pytest.mark.parametrize("batch_size", [0, -3])
def test_import_config_rejects_non_positive_batch_size(batch_size: int) -> None:
    with pytest.raises(ConfigurationError):
        get_import_config(batch_size=batch_size)


def test_import_config_category_selection(tmp_path: Path) -> None:
    config = ImportConfig(selected_categories=("batch",)).with_sources(tmp_path / "batch.csv")

    assert config.source_paths == (tmp_path / "batch.csv",)
    assert config.includes("batch")
    assert not config.includes("family")


@pytest.fixture
def clean_database_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ("QUARRY_DATABASE_URI", "DATABASE_URI", "QUARRY_SQL_ECHO", "QUARRY_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_optional_bool_env_var(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUARRY_TEST_FLAG", " Yes ")
    assert optional_bool_env_var("QUARRY_TEST_FLAG") is True

    monkeypatch.setenv("QUARRY_TEST_FLAG", "0")
    assert optional_bool_env_var("QUARRY_TEST_FLAG") is False

    monkeypatch.setenv("QUARRY_TEST_FLAG", "")
    assert optional_bool_env_var("QUARRY_TEST_FLAG") is None

    monkeypatch.setenv("QUARRY_TEST_FLAG", "sometimes")
    with pytest.raises(ConfigurationError, match="QUARRY_TEST_FLAG"):
        optional_bool_env_var("QUARRY_TEST_FLAG")


def test_storage_prefers_explicit_data_dir(
    clean_database_env: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    custom = tmp_path / "custom-data"
    clean_database_env.setenv("QUARRY_DATA_DIR", str(custom))

    config = storage.get_storage_config()

    assert config.data_dir == custom
    assert config.database_path() == (custom / "destination.db").resolve()


def test_storage_falls_back_to_xdg_data_home(
    clean_database_env: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    clean_database_env.setattr(storage.os, "name", "posix")
    clean_database_env.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))

    assert storage.get_storage_config().data_dir == tmp_path / "xdg" / "quarry"


def test_quarry_database_uri_wins_over_generic_one(
    clean_database_env: pytest.MonkeyPatch,
) -> None:
    clean_database_env.setenv("DATABASE_URI", "sqlite:///generic.db")
    assert storage.get_database_config().uri == "sqlite:///generic.db"

    clean_database_env.setenv("QUARRY_DATABASE_URI", " sqlite:///destination.db ")
    assert storage.get_database_config().uri == "sqlite:///destination.db"


def test_explicit_uri_skips_environment(clean_database_env: pytest.MonkeyPatch) -> None:
    clean_database_env.setenv("QUARRY_DATABASE_URI", "sqlite:///destination.db")
    clean_database_env.setenv("QUARRY_SQL_ECHO", "true")

    config = storage.get_database_config(uri="sqlite:///cli.db")

    assert config == storage.DatabaseConfig(uri="sqlite:///cli.db", echo=True)


def test_database_uri_creates_data_dir(
    clean_database_env: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    clean_database_env.setenv("QUARRY_DATA_DIR", str(tmp_path / "data-dir"))

    config = storage.get_database_config()

    expected_path = (tmp_path / "data-dir" / storage.DEFAULT_DB_FILENAME).resolve()
    assert config.uri == f"sqlite+pysqlite:///{expected_path}"
    assert config.echo is False
    assert expected_path.parent.exists()


def test_unknown_category_error_lists_known_layouts() -> None:
    error = UnknownCategoryError("Unknown import category 'attendance'", ("family", "batch"))

    assert isinstance(error, ConfigurationError)
    assert error.known == ("family", "batch")
    assert str(error) == "Unknown import category 'attendance'; expected one of family, batch"


def test_source_file_error_keeps_paths() -> None:
    error = SourceFileError(["a.csv", "b.csv"])

    assert error.paths == ("a.csv", "b.csv")
    assert str(error) == "File(s) not found: a.csv, b.csv"


def test_configure_logging_quiets_sqlalchemy_unless_verbose() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    engine_logger = logging.getLogger("sqlalchemy.engine")
    try:
        configure_logging(force=True)
        assert logging.getLogger().level == logging.INFO
        assert engine_logger.level == logging.WARNING

        configure_logging(verbose=True, force=True)
        assert logging.getLogger().level == logging.DEBUG
        assert engine_logger.level == logging.NOTSET
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
        engine_logger.setLevel(logging.NOTSET)
        logging.getLogger("sqlalchemy.pool").setLevel(logging.NOTSET)
