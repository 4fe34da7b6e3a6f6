"""
Tests for the single-service rollout state machine.
"""

from unittest.mock import call

import pytest

from fleet_deployer.deployment import EventDispatcher, ServiceDeployment
from fleet_deployer.exceptions import (
    ArtifactStoreError,
    ControlPlaneError,
    DeploymentSupersededError,
    DeploymentTimeoutError,
)
from fleet_deployer.models import (
    CapacityRecord,
    DeploymentPhase,
    EventType,
    TaskDefinitionDocument,
    WaitStatus,
)


class TestServiceDeployment:
    """Test a single service rollout."""

    @pytest.fixture
    def make_deployment(self, control_plane, artifact_store, events, sleep):
        def _make(service, **kwargs):
            return ServiceDeployment(
                service,
                control_plane=control_plane,
                artifact_store=artifact_store,
                events=EventDispatcher(events.append),
                sleep=sleep,
                **kwargs,
            )

        return _make

    @pytest.mark.asyncio
    async def test_run_without_auto_scaling(
        self, make_deployment, web_service, control_plane, task_arn, events
    ):
        """Test a rollout that converges on the first status check."""
        deployment = make_deployment(web_service)

        result = await deployment.run("2.0")

        assert result == web_service
        assert deployment.phase == DeploymentPhase.CONVERGED
        assert deployment.task_reference == task_arn
        control_plane.update_service.assert_awaited_once_with("production", "web", task_arn)
        control_plane.describe_service.assert_awaited_once_with("production", "web")
        control_plane.describe_auto_scaling_group.assert_not_awaited()
        control_plane.set_desired_capacity.assert_not_awaited()

        messages = [e.message for e in events if e.type == EventType.PROGRESS]
        assert messages[0] == f"Registered new task definition {task_arn}"
        assert "New version is running" in messages
        assert messages[-1] == "Old versions are no longer running"
        assert all(e.service == "web" for e in events)

    @pytest.mark.asyncio
    async def test_registers_document_with_rewritten_images(
        self, make_deployment, web_service, control_plane, task_definition
    ):
        """Test that every container image points at the new version."""
        await make_deployment(web_service).run("2.0")

        registered = control_plane.register_task_definition.await_args.args[0]
        assert isinstance(registered, TaskDefinitionDocument)
        assert registered.images == [
            "registry.example.com:5000/acme/storefront:2.0",
            "acme/storefront:2.0",
        ]
        # The fetched template is left untouched
        assert task_definition.images == [
            "registry.example.com:5000/acme/storefront:1.4",
            "acme/storefront:1.4",
        ]

    @pytest.mark.asyncio
    async def test_scales_up_then_restores_capacity(
        self, make_deployment, scaling_service, control_plane
    ):
        """Test that capacity is doubled for the rollout and restored afterwards."""
        deployment = make_deployment(scaling_service)

        await deployment.run("2.0")

        assert deployment.previous_capacity == 3
        control_plane.describe_auto_scaling_group.assert_awaited_once_with("production-asg")
        assert control_plane.set_desired_capacity.await_args_list == [
            call("production-asg", 6),
            call("production-asg", 3),
        ]

    @pytest.mark.asyncio
    async def test_scale_down_restores_recorded_capacity_despite_drift(
        self, make_deployment, scaling_service, control_plane
    ):
        """Capacity changed by someone else mid-rollout is not what we restore."""
        control_plane.describe_auto_scaling_group.side_effect = [
            CapacityRecord(group_name="production-asg", desired_capacity=4),
            CapacityRecord(group_name="production-asg", desired_capacity=11),
        ]

        await make_deployment(scaling_service).run("2.0")

        assert control_plane.describe_auto_scaling_group.await_count == 1
        assert control_plane.set_desired_capacity.await_args_list[-1] == call("production-asg", 4)

    @pytest.mark.asyncio
    async def test_polls_until_converged(
        self, make_deployment, web_service, control_plane, status_factory, sleep, events
    ):
        """Test waiting through deploying and ramping-down observations."""
        control_plane.describe_service.side_effect = [
            status_factory(task_reference=None, old_running=2),
            status_factory(desired=2, running=1, old_running=2),
            status_factory(desired=2, running=2, old_running=1),
            status_factory(desired=2, running=2, old_running=0),
        ]
        deployment = make_deployment(web_service, poll_interval_seconds=5.0)

        await deployment.run("2.0")

        assert control_plane.describe_service.await_count == 4
        assert deployment.poll_attempts == 4
        assert sleep.await_args_list == [call(5.0)] * 3

        waiting = [e for e in events if e.type == EventType.WAITING]
        assert [e.status for e in waiting] == [
            WaitStatus.DEPLOYING_NEW_VERSION,
            WaitStatus.DEPLOYING_NEW_VERSION,
            WaitStatus.RAMPING_DOWN_OLD_VERSION,
        ]
        assert all(e.interval_seconds == 5.0 for e in waiting)

        progress = [e.message for e in events if e.type == EventType.PROGRESS]
        assert progress.count("New version is running") == 1

    @pytest.mark.asyncio
    async def test_timeout_after_max_poll_attempts(
        self, make_deployment, web_service, control_plane, status_factory, sleep, events
    ):
        """Test that exactly max_poll_attempts status checks are made."""
        control_plane.describe_service.side_effect = lambda cluster, name: status_factory(
            desired=2, running=0, old_running=2
        )
        deployment = make_deployment(web_service, max_poll_attempts=3)

        with pytest.raises(DeploymentTimeoutError) as exc_info:
            await deployment.run("2.0")

        assert exc_info.value.attempts == 3
        assert control_plane.describe_service.await_count == 3
        assert sleep.await_count == 2
        assert deployment.phase == DeploymentPhase.FAILED
        assert len([e for e in events if e.type == EventType.WAITING]) == 3

    @pytest.mark.asyncio
    async def test_superseded_fails_immediately(
        self, make_deployment, scaling_service, control_plane, status_factory, sleep
    ):
        """Test that losing primacy stops the rollout without scaling down."""
        control_plane.describe_service.side_effect = [status_factory(primary=False)]
        deployment = make_deployment(scaling_service)

        with pytest.raises(DeploymentSupersededError):
            await deployment.run("2.0")

        assert deployment.phase == DeploymentPhase.FAILED
        sleep.assert_not_awaited()
        control_plane.set_desired_capacity.assert_awaited_once_with("production-asg", 6)

    @pytest.mark.asyncio
    async def test_register_failure_stops_rollout(
        self, make_deployment, web_service, control_plane
    ):
        control_plane.register_task_definition.side_effect = ControlPlaneError(
            "register_task_definition", "AccessDenied"
        )
        deployment = make_deployment(web_service)

        with pytest.raises(ControlPlaneError):
            await deployment.run("2.0")

        assert deployment.phase == DeploymentPhase.FAILED
        control_plane.update_service.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_run_is_single_use(self, make_deployment, web_service):
        deployment = make_deployment(web_service)
        await deployment.run("2.0")

        with pytest.raises(RuntimeError, match="already run"):
            await deployment.run("2.1")

    def test_rejects_invalid_polling_budget(self, make_deployment, web_service):
        with pytest.raises(ValueError):
            make_deployment(web_service, poll_interval_seconds=0)
        with pytest.raises(ValueError):
            make_deployment(web_service, max_poll_attempts=0)


class TestServiceReadiness:
    """Test readiness checks for a single service."""

    @pytest.mark.asyncio
    async def test_ready_without_auto_scaling(
        self, web_service, control_plane, artifact_store, sleep
    ):
        deployment = ServiceDeployment(web_service, control_plane, artifact_store, sleep=sleep)

        await deployment.is_ready()

        artifact_store.fetch.assert_awaited_once_with(web_service.task_definition)
        control_plane.describe_service.assert_awaited_once_with("production", "web")
        control_plane.describe_auto_scaling_group.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ready_checks_auto_scaling_group(
        self, scaling_service, control_plane, artifact_store, sleep
    ):
        deployment = ServiceDeployment(scaling_service, control_plane, artifact_store, sleep=sleep)

        await deployment.is_ready()

        control_plane.describe_auto_scaling_group.assert_awaited_once_with("production-asg")

    @pytest.mark.asyncio
    async def test_not_ready_when_template_missing(
        self, web_service, control_plane, artifact_store, sleep
    ):
        artifact_store.fetch.side_effect = ArtifactStoreError(
            "s3://acme-deploy/storefront/web.json", "NoSuchKey"
        )
        deployment = ServiceDeployment(web_service, control_plane, artifact_store, sleep=sleep)

        with pytest.raises(ArtifactStoreError):
            await deployment.is_ready()

        assert deployment.phase == DeploymentPhase.PENDING
