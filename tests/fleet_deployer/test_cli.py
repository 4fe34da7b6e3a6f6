"""
Tests for the command line interface.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
import yaml

from fleet_deployer.cli import (
    EXIT_FAILED,
    EXIT_INVALID,
    EXIT_NOT_READY,
    EXIT_OK,
    main,
)
from fleet_deployer.exceptions import ArtifactStoreError, ImageNotFoundError
from fleet_deployer.models import DeployOutcome, FleetResult


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep CLI runs from reconfiguring logging for the whole test session."""
    with patch("fleet_deployer.cli.configure_logging"):
        yield


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "fleet.yml"
    path.write_text(
        yaml.safe_dump(
            {
                "registry": {"kind": "none"},
                "services": [
                    {
                        "name": "web",
                        "cluster": "production",
                        "task_definition": "s3://acme-deploy/web.json",
                    }
                ],
                "deployer": {"region": "us-east-1"},
            }
        )
    )
    return path


@pytest.fixture
def controller_cls():
    with patch("fleet_deployer.cli.DeploymentController") as controller_cls:
        yield controller_cls


def fleet_result(*failed_services):
    outcomes = [DeployOutcome(service="web", cluster="production", succeeded=True)]
    outcomes += [
        DeployOutcome(service=name, cluster="production", succeeded=False, error="timed out")
        for name in failed_services
    ]
    return FleetResult(version="2.0", outcomes=outcomes)


class TestCli:
    """Test commands and exit codes."""

    def test_generate_config(self, tmp_path, capsys):
        path = tmp_path / "generated" / "fleet.yml"

        assert main(["--generate-config", "--config", str(path)]) == EXIT_OK

        data = yaml.safe_load(path.read_text())
        assert data["registry"]["kind"] == "docker"
        assert "Generated sample configuration" in capsys.readouterr().out

    def test_missing_config(self, tmp_path):
        assert main(["--config", str(tmp_path / "missing.yml"), "validate"]) == EXIT_INVALID

    def test_no_command(self, config_path):
        assert main(["--config", str(config_path)]) == EXIT_INVALID

    def test_validate(self, config_path, capsys):
        assert main(["--config", str(config_path), "validate"]) == EXIT_OK
        assert "Configuration valid" in capsys.readouterr().out

    def test_validate_without_services(self, tmp_path):
        path = tmp_path / "fleet.yml"
        path.write_text("registry:\n  kind: none\n")

        assert main(["--config", str(path), "validate"]) == EXIT_INVALID

    def test_unparsable_config(self, tmp_path):
        path = tmp_path / "fleet.yml"
        path.write_text("registry: [")

        assert main(["--config", str(path), "validate"]) == EXIT_INVALID

    def test_deploy_success(self, config_path, controller_cls, capsys):
        controller_cls.return_value.deploy = AsyncMock(return_value=fleet_result())

        assert main(["--config", str(config_path), "deploy", "2.0"]) == EXIT_OK

        controller_cls.return_value.deploy.assert_awaited_once_with("2.0")
        assert "1 of 1 services deployed version 2.0" in capsys.readouterr().out

    def test_deploy_partial_failure(self, config_path, controller_cls):
        controller_cls.return_value.deploy = AsyncMock(return_value=fleet_result("worker"))

        assert main(["--config", str(config_path), "deploy", "2.0"]) == EXIT_FAILED

    def test_deploy_json_output(self, config_path, controller_cls, capsys):
        controller_cls.return_value.deploy = AsyncMock(return_value=fleet_result("worker"))

        main(["--config", str(config_path), "deploy", "2.0", "--json"])

        output = json.loads(capsys.readouterr().out)
        assert output["version"] == "2.0"
        assert [o["succeeded"] for o in output["outcomes"]] == [True, False]

    def test_deploy_image_missing(self, config_path, controller_cls):
        controller_cls.return_value.deploy = AsyncMock(
            side_effect=ImageNotFoundError("quay", "2.0", "Unable to find tagged image in Quay")
        )

        assert main(["--config", str(config_path), "deploy", "2.0"]) == EXIT_NOT_READY

    def test_check(self, config_path, controller_cls, capsys):
        controller_cls.return_value.check_readiness = AsyncMock(return_value=None)

        assert main(["--config", str(config_path), "check", "2.0"]) == EXIT_OK
        assert "ready to deploy" in capsys.readouterr().out

    def test_check_not_ready(self, config_path, controller_cls):
        controller_cls.return_value.check_readiness = AsyncMock(
            side_effect=ArtifactStoreError("s3://acme-deploy/web.json", "Access Denied")
        )

        assert main(["--config", str(config_path), "check", "2.0"]) == EXIT_NOT_READY

    def test_region_override(self, config_path, controller_cls):
        controller_cls.return_value.deploy = AsyncMock(return_value=fleet_result())

        main(["--config", str(config_path), "--region", "eu-west-1", "deploy", "2.0"])

        settings = controller_cls.call_args.args[1]
        assert settings.region == "eu-west-1"
