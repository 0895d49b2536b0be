import logging

from kasir.core.config import Settings
from kasir.core.exceptions import InsufficientStock, LockTimeout, ProductNotFound, StoreError
from kasir.core.logging import configure_logging


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("KASIR_DATABASE_URL", "postgresql+psycopg2://pos@db/kasir")
    monkeypatch.setenv("KASIR_LOCK_TIMEOUT_MS", "250")

    settings = Settings(_env_file=None)

    assert settings.database_url == "postgresql+psycopg2://pos@db/kasir"
    assert settings.lock_timeout_ms == 250
    assert settings.create_schema is True


def test_error_payloads():
    error = InsufficientStock(7, available=2, requested=10, product_name="Teh")

    assert error.status_code == 400
    assert error.to_dict() == {
        "error": "InsufficientStock",
        "message": "Insufficient stock for Teh. Available: 2, requested: 10",
        "details": {"product_id": 7, "available": 2, "requested": 10},
    }
    assert ProductNotFound(3).status_code == 404


def test_lock_timeout_is_a_retryable_store_error():
    error = LockTimeout("busy")

    assert isinstance(error, StoreError)
    assert error.retryable
    assert error.status_code == 503


def test_configure_logging_sets_kasir_level():
    logger = logging.getLogger("kasir")
    try:
        configure_logging("debug")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
    finally:
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True
