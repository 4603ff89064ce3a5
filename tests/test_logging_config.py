"""
Tests for logging configuration.
"""
import logging


class TestLoggingConfiguration:
    """Test logging setup and configuration."""

    def test_setup_logging_default_level(self, monkeypatch):
        """Test that setup_logging defaults to INFO level."""
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        from storedesk.logging_config import setup_logging
        setup_logging()

        assert logging.getLogger("storedesk").level == logging.INFO

    def test_setup_logging_respects_env_var(self, monkeypatch):
        """Test that LOG_LEVEL env var is respected."""
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        from storedesk.logging_config import setup_logging
        setup_logging()

        assert logging.getLogger("storedesk").level == logging.WARNING

    def test_setup_logging_explicit_level(self):
        from storedesk.logging_config import setup_logging
        setup_logging(level="error")

        assert logging.getLogger("storedesk").level == logging.ERROR

    def test_setup_logging_invalid_level_defaults_to_info(self):
        """Test that invalid level falls back to INFO."""
        from storedesk.logging_config import setup_logging
        setup_logging(level="INVALID_LEVEL")

        assert logging.getLogger("storedesk").level == logging.INFO

    def test_noisy_loggers_quieted_outside_debug(self):
        from storedesk.logging_config import NOISY_LOGGERS, setup_logging
        setup_logging(level="INFO")

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


class TestNoSensitiveDataInLogs:
    """Test that customer data stays out of INFO logs."""

    def test_debug_logs_not_shown_at_info_level(self, caplog):
        """Test that DEBUG logs don't appear when level is INFO."""
        from storedesk.logging_config import setup_logging
        setup_logging(level="INFO")

        with caplog.at_level(logging.INFO):
            logger = logging.getLogger("storedesk.test")
            logger.debug("This should not appear")
            logger.info("This should appear")

            messages = [r.message for r in caplog.records]
            assert "This should not appear" not in messages
            assert "This should appear" in messages

    def test_widget_turn_does_not_log_message_text(self, client, caplog):
        """Customer message text is never written at INFO or above."""
        secret = "99119911 гэдэг миний утас"
        with caplog.at_level(logging.INFO):
            resp = client.post("/chat/widget", json={
                "store_id": "store-1",
                "sender_id": "web_privacy",
                "message": secret,
            })
        assert resp.status_code == 200

        for record in caplog.records:
            if record.levelno >= logging.INFO:
                assert "99119911" not in record.getMessage()


class TestRequestIdOnRecords:
    """Log records carry the X-Request-ID of the call that wrote them."""

    def _record(self):
        return logging.LogRecord("storedesk.test", logging.INFO, __file__, 1, "hello", None, None)

    def test_outside_a_request(self):
        from storedesk.logging_config import RequestIdFilter
        record = self._record()
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "-"

    def test_inside_a_request(self):
        from storedesk.logging_config import RequestIdFilter, request_id_var
        token = request_id_var.set("req-7")
        try:
            record = self._record()
            RequestIdFilter().filter(record)
        finally:
            request_id_var.reset(token)
        assert record.request_id == "req-7"

    def test_widget_logs_use_header_id(self, client, caplog):
        from storedesk.logging_config import RequestIdFilter
        caplog.handler.addFilter(RequestIdFilter())

        with caplog.at_level(logging.INFO):
            resp = client.post(
                "/chat/widget",
                json={"store_id": "store-1", "sender_id": "web_traced", "message": "Сайн байна уу"},
                headers={"X-Request-ID": "req-widget-1"},
            )
        assert resp.status_code == 200

        created = [r for r in caplog.records if r.getMessage().startswith("Created customer")]
        assert created
        assert all(r.request_id == "req-widget-1" for r in created)

    def test_resolve_level(self, monkeypatch):
        from storedesk.logging_config import resolve_level
        monkeypatch.setenv("LOG_LEVEL", "")
        assert resolve_level() == "INFO"
        assert resolve_level("debug") == "DEBUG"
        assert resolve_level("verbose") == "INFO"
