import logging
from logging.handlers import RotatingFileHandler

from crudkit.config.settings import Settings
from crudkit.core.logging.builder import make_dict_config, setup_logging


def make_settings(**overrides) -> Settings:
    values = {"ENV": "production", "LOG_FORMAT": "json", "LOG_LEVEL": "INFO", "LOG_TO_STDOUT": True,
              "LOG_MAX_BYTES": 1000, "LOG_BACKUP_COUNT": 1}
    values.update(overrides)
    return Settings(**values)


def test_stdout_config_has_console_handlers_only():
    cfg = make_dict_config(make_settings())

    assert set(cfg["handlers"]) == {"console", "error_console"}
    assert cfg["handlers"]["console"]["formatter"] == "json"
    assert cfg["handlers"]["error_console"]["level"] == "ERROR"
    assert set(cfg["filters"]) == {"request_id", "redact"}
    assert cfg["loggers"][""]["level"] == "INFO"


def test_file_config_adds_rotating_files(tmp_path):
    cfg = make_dict_config(make_settings(LOG_TO_STDOUT=False, LOG_DIR=tmp_path, LOG_FORMAT="text"))

    assert set(cfg["handlers"]) == {"console", "file", "error_file"}
    assert cfg["handlers"]["file"]["filename"] == str(tmp_path / "crudkit.log")
    assert cfg["handlers"]["file"]["formatter"] == "standard"
    # error file stays structured regardless of LOG_FORMAT
    assert cfg["handlers"]["error_file"]["formatter"] == "json"


def test_sql_logging_toggle():
    quiet = make_dict_config(make_settings())
    loud = make_dict_config(make_settings(ENABLE_SQL_LOGGING=True))

    assert quiet["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"
    assert loud["loggers"]["sqlalchemy.engine"]["level"] == "DEBUG"


def test_setup_logging_creates_log_dir(tmp_path, restore_logging):
    log_dir = tmp_path / "logs"
    assert not log_dir.exists()

    setup_logging(make_settings(LOG_TO_STDOUT=False, LOG_DIR=log_dir))

    assert log_dir.exists()
    root = logging.getLogger()
    assert any(isinstance(h, RotatingFileHandler) for h in root.handlers)
