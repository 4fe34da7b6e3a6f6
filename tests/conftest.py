"""
Pytest configuration and fixtures for fleet-deployer tests.
"""

import logging
from typing import List, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from fleet_deployer.models import (
    ApplicationDescriptor,
    CapacityRecord,
    DeploymentRecord,
    DeploymentStatus,
    ServiceDescriptor,
    TaskDefinitionDocument,
)

TASK_ARN = "arn:aws:ecs:us-east-1:123456789012:task-definition/storefront:42"
OLD_TASK_ARN = "arn:aws:ecs:us-east-1:123456789012:task-definition/storefront:41"


def make_status(
    service_name: str = "web",
    task_reference: Optional[str] = TASK_ARN,
    primary: bool = True,
    desired: int = 2,
    running: int = 2,
    old_running: int = 0,
) -> DeploymentStatus:
    """Build a service status with our deployment and one older deployment."""
    deployments: List[DeploymentRecord] = []
    if task_reference is not None:
        deployments.append(
            DeploymentRecord(
                task_reference=task_reference,
                is_primary=primary,
                desired_count=desired,
                running_count=running,
            )
        )
    deployments.append(
        DeploymentRecord(
            task_reference=OLD_TASK_ARN,
            is_primary=task_reference is None,
            desired_count=old_running,
            running_count=old_running,
        )
    )
    return DeploymentStatus(service_name=service_name, deployments=deployments)


@pytest.fixture
def task_definition_data():
    """Task definition template as stored in S3."""
    return {
        "family": "storefront",
        "networkMode": "awsvpc",
        "revision": 41,
        "taskDefinitionArn": OLD_TASK_ARN,
        "containerDefinitions": [
            {
                "name": "web",
                "image": "registry.example.com:5000/acme/storefront:1.4",
                "memory": 512,
                "portMappings": [{"containerPort": 8080}],
            },
            {"name": "sidecar", "image": "acme/storefront:1.4", "essential": False},
        ],
    }


@pytest.fixture
def task_definition(task_definition_data):
    return TaskDefinitionDocument.model_validate(task_definition_data)


@pytest.fixture
def web_service():
    return ServiceDescriptor(
        name="web",
        cluster="production",
        task_definition="s3://acme-deploy/storefront/web.json",
    )


@pytest.fixture
def scaling_service():
    return ServiceDescriptor(
        name="api",
        cluster="production",
        task_definition="s3://acme-deploy/storefront/api.json",
        auto_scaling={"group_name": "production-asg"},
    )


@pytest.fixture
def application(web_service, scaling_service):
    return ApplicationDescriptor(
        name="storefront",
        services=[web_service, scaling_service],
        registry={"kind": "quay", "url": "https://quay.io/api/v1/repository/acme/storefront"},
    )


@pytest.fixture
def control_plane():
    """Control plane mock whose services converge on the first status check."""
    plane = Mock()
    plane.register_task_definition = AsyncMock(return_value=TASK_ARN)
    plane.update_service = AsyncMock(return_value=None)
    plane.describe_service = AsyncMock(
        side_effect=lambda cluster, name: make_status(service_name=name)
    )
    plane.describe_auto_scaling_group = AsyncMock(
        return_value=CapacityRecord(group_name="production-asg", desired_capacity=3)
    )
    plane.set_desired_capacity = AsyncMock(return_value=None)
    return plane


@pytest.fixture
def artifact_store(task_definition):
    store = Mock()
    store.fetch = AsyncMock(return_value=task_definition)
    return store


@pytest.fixture
def sleep():
    """Replacement for asyncio.sleep so polling tests run instantly."""
    return AsyncMock(return_value=None)


@pytest.fixture
def events():
    """Collects every DeploymentEvent delivered to the listener."""
    return []


@pytest.fixture
def restore_logging():
    """Restore root and rollout logger handlers after tests that call setup_logging."""
    root = logging.getLogger()
    rollout = logging.getLogger("fleet_deployer.rollout")
    saved = (list(root.handlers), root.level, list(rollout.handlers), rollout.propagate)
    yield
    for logger in (root, rollout):
        for handler in logger.handlers:
            handler.close()
    root.handlers[:] = saved[0]
    root.setLevel(saved[1])
    rollout.handlers[:] = saved[2]
    rollout.propagate = saved[3]


@pytest.fixture
def status_factory():
    """Factory for DeploymentStatus snapshots (see make_status)."""
    return make_status


@pytest.fixture
def task_arn():
    """Task reference returned by the control plane mock on registration."""
    return TASK_ARN
