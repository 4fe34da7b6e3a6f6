"""
Tests for logging setup and the audit trail.
"""

import json
import logging

import pytest

from fleet_deployer.audit import audit_deployment_action
from fleet_deployer.logging_config import (
    ROLLOUT_LOGGER,
    LogContext,
    StructuredFormatter,
    log_service_operation,
    setup_logging,
)


@pytest.mark.usefixtures("restore_logging")
class TestSetupLogging:
    """Test log files and the dedicated rollout log."""

    def test_creates_log_files(self, tmp_path):
        setup_logging(log_dir=str(tmp_path / "logs"))
        logging.getLogger("fleet_deployer.test").error("something broke")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "something broke" in (tmp_path / "logs" / "deployer.log").read_text()
        assert "something broke" in (tmp_path / "logs" / "error.log").read_text()

    def test_rollout_log_is_separate(self, tmp_path):
        setup_logging(log_dir=str(tmp_path), use_json=True)

        log_service_operation("scale_up", "web", {"from": 3, "to": 6})
        rollout = logging.getLogger(ROLLOUT_LOGGER)
        for handler in rollout.handlers:
            handler.flush()

        assert rollout.propagate is False
        record = json.loads((tmp_path / "rollout.log").read_text().splitlines()[-1])
        assert record["service"] == "web"
        assert record["operation"] == "scale_up"
        assert '"to": 6' in record["message"]
        assert "scale_up" not in (tmp_path / "deployer.log").read_text()

    def test_quiets_sdk_loggers(self, tmp_path):
        setup_logging(log_dir=str(tmp_path))

        assert logging.getLogger("botocore").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING


class TestFormatting:
    def test_structured_formatter_includes_context(self):
        logger = logging.getLogger("fleet_deployer.test.context")
        with LogContext(logger, service="api", version="2.0"):
            record = logger.makeRecord(
                logger.name, logging.INFO, __file__, 1, "deploying", None, None
            )

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "deploying"
        assert data["service"] == "api"
        assert data["version"] == "2.0"


class TestAudit:
    """Test the JSONL audit trail."""

    def test_appends_entries(self, tmp_path):
        path = tmp_path / "audit" / "audit.jsonl"

        audit_deployment_action("deploy_started", "2.0", path, details={"services": ["web"]})
        audit_deployment_action("deploy_completed", "2.0", path, success=False)

        entries = [json.loads(line) for line in path.read_text().splitlines()]
        assert entries[0]["action"] == "deploy_started"
        assert entries[0]["details"] == {"services": ["web"]}
        assert "success" not in entries[0]
        assert entries[1]["success"] is False

    def test_disabled_without_path(self, tmp_path):
        audit_deployment_action("deploy_started", "2.0", None)

        assert list(tmp_path.iterdir()) == []

    def test_write_failure_is_logged(self, tmp_path, caplog):
        blocker = tmp_path / "not-a-directory"
        blocker.write_text("")

        audit_deployment_action("deploy_started", "2.0", blocker / "audit.jsonl")

        assert "Failed to write audit log" in caplog.text
