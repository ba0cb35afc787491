import logging

from logging_config import APP_LOG_FILE_NAME, CLIENTS_LOG_FILE_NAME, setup_logging


def test_setup_logging_writes_service_and_client_logs(tmp_path):
    directory = setup_logging("debug", str(tmp_path / "logs"))

    logging.getLogger("justbank.services.transfers").info("service line")
    logging.getLogger("justbank.clients.dwolla").info("client line")
    for name in ("justbank", "justbank.clients"):
        for handler in logging.getLogger(name).handlers:
            handler.flush()

    assert directory == tmp_path / "logs"
    assert "service line" in (directory / APP_LOG_FILE_NAME).read_text()
    client_log = (directory / CLIENTS_LOG_FILE_NAME).read_text()
    assert "client line" in client_log
    assert "client line" not in (directory / APP_LOG_FILE_NAME).read_text()
    assert logging.getLogger("justbank.clients").propagate is False


def test_setup_logging_is_idempotent(tmp_path):
    setup_logging("INFO", str(tmp_path))
    setup_logging("INFO", str(tmp_path))
    assert len(logging.getLogger("justbank").handlers) == 2
