"""
Tests for DeploymentService.

Runs the lifecycle state machine against an in-memory workload store and
container runtime (see conftest.py).
"""
import pytest
from uuid import uuid4

from app.core.exceptions import (
    ContainerImageRequiredError,
    ContainerNotFoundError,
    DeploymentExecutionError,
    RuntimeFailure,
    WorkloadBusyError,
    WorkloadNotFoundError,
)
from app.models.workload import DeploymentStatus
from app.services.deployment.deployment_service import DeploymentService
from app.services.deployment.runtime_base import SoftFailure

from conftest import FixedPortAllocator, make_workload, runtime_failure


class TestDeploy:
    """Tests for deploy."""

    @pytest.mark.asyncio
    async def test_deploy_without_image_is_rejected_without_changes(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(owner_id, container_image=None))

        with pytest.raises(ContainerImageRequiredError) as exc_info:
            await deployment_service.deploy(workload.id, owner_id)

        assert exc_info.value.message == "Container image is required for deployment"
        assert workload.deployment_status == DeploymentStatus.NOT_DEPLOYED.value
        assert repository.saved_statuses == []
        assert runtime.calls == []

    @pytest.mark.asyncio
    async def test_deploy_success_sets_running_state(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(owner_id))

        result = await deployment_service.deploy(workload.id, owner_id)

        assert result.deployment_status == DeploymentStatus.RUNNING.value
        assert result.container_id == "container-1"
        assert result.access_url == "http://localhost:32768"
        assert result.deployed_at is not None
        assert repository.saved_statuses == [
            DeploymentStatus.DEPLOYING.value,
            DeploymentStatus.RUNNING.value,
        ]

        run_call = runtime.run_kwargs[0]
        assert run_call["name"] == runtime.container_name(owner_id, workload.id)
        assert run_call["host_port"] == 32768
        assert run_call["container_port"] == 80
        assert run_call["image"] == "nginx:alpine"
        assert run_call["memory_limit_gb"] is None
        assert run_call["cpu_limit"] is None

    @pytest.mark.asyncio
    async def test_first_deploy_sweeps_stale_container_name(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(owner_id))

        await deployment_service.deploy(workload.id, owner_id)

        name = runtime.container_name(owner_id, workload.id)
        assert runtime.calls[0] == ("force_remove_by_name", name)
        assert runtime.calls[1] == ("run", name)

    @pytest.mark.asyncio
    async def test_deploy_passes_resolved_environment(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(
            owner_id,
            environment_variables='{"A": "1", "B": "", "GREETING": "hello world"}',
        ))

        await deployment_service.deploy(workload.id, owner_id)

        assert runtime.run_kwargs[0]["env_assignments"] == ["A=1", "GREETING=hello world"]

    @pytest.mark.asyncio
    async def test_deploy_ignores_malformed_environment(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(owner_id, environment_variables="not-json"))

        result = await deployment_service.deploy(workload.id, owner_id)

        assert result.deployment_status == DeploymentStatus.RUNNING.value
        assert runtime.run_kwargs[0]["env_assignments"] == []

    @pytest.mark.asyncio
    async def test_deploy_applies_resource_limits_when_enabled(
        self, repository, runtime, lock_registry, owner_id
    ):
        service = DeploymentService(
            repository=repository,
            runtime=runtime,
            ports=FixedPortAllocator(),
            locks=lock_registry,
            public_host="localhost",
            apply_resource_limits=True,
        )
        workload = repository.add(make_workload(owner_id, required_cpu=2, required_memory=1.5))

        await service.deploy(workload.id, owner_id)

        assert runtime.run_kwargs[0]["memory_limit_gb"] == 1.5
        assert runtime.run_kwargs[0]["cpu_limit"] == 2

    @pytest.mark.asyncio
    async def test_deploy_uses_custom_exposed_port_and_public_host(
        self, repository, runtime, lock_registry, owner_id
    ):
        service = DeploymentService(
            repository=repository,
            runtime=runtime,
            ports=FixedPortAllocator(40001),
            locks=lock_registry,
            public_host="console.example.com",
            apply_resource_limits=False,
        )
        workload = repository.add(make_workload(owner_id, exposed_port=8080))

        result = await service.deploy(workload.id, owner_id)

        assert runtime.run_kwargs[0]["container_port"] == 8080
        assert result.access_url == "http://console.example.com:40001"

    @pytest.mark.asyncio
    async def test_run_failure_marks_error_and_cleans_up_by_name(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(owner_id))
        runtime.fail_run = runtime_failure("run", "pull access denied")

        with pytest.raises(DeploymentExecutionError) as exc_info:
            await deployment_service.deploy(workload.id, owner_id)

        assert "pull access denied" in exc_info.value.message
        assert workload.deployment_status == DeploymentStatus.ERROR.value
        assert workload.container_id is None
        assert repository.saved_statuses == [
            DeploymentStatus.DEPLOYING.value,
            DeploymentStatus.ERROR.value,
        ]
        assert runtime.operations() == ["force_remove_by_name", "run", "force_remove_by_name"]

    @pytest.mark.asyncio
    async def test_redeploy_removes_old_container_before_run(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(
            owner_id,
            deployment_status=DeploymentStatus.STOPPED.value,
            container_id="old-container",
            access_url="http://localhost:1234",
        ))

        result = await deployment_service.deploy(workload.id, owner_id)

        assert runtime.operations() == ["remove", "run"]
        assert runtime.calls[0] == ("remove", "old-container")
        assert result.container_id == "container-1"
        assert result.deployment_status == DeploymentStatus.RUNNING.value

    @pytest.mark.asyncio
    async def test_redeploy_falls_back_to_removal_by_name(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(
            owner_id,
            deployment_status=DeploymentStatus.RUNNING.value,
            container_id="old-container",
        ))
        runtime.fail_remove = runtime_failure("remove", "daemon unavailable")

        result = await deployment_service.deploy(workload.id, owner_id)

        name = runtime.container_name(owner_id, workload.id)
        assert runtime.calls == [
            ("remove", "old-container"),
            ("force_remove_by_name", name),
            ("run", name),
        ]
        assert result.deployment_status == DeploymentStatus.RUNNING.value

    @pytest.mark.asyncio
    async def test_redeploy_from_error_without_container(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(owner_id, deployment_status=DeploymentStatus.ERROR.value))

        result = await deployment_service.deploy(workload.id, owner_id)

        assert runtime.operations() == ["force_remove_by_name", "run"]
        assert result.deployment_status == DeploymentStatus.RUNNING.value

    @pytest.mark.asyncio
    async def test_deploy_unknown_workload(self, deployment_service, owner_id):
        with pytest.raises(WorkloadNotFoundError):
            await deployment_service.deploy(uuid4(), owner_id)

    @pytest.mark.asyncio
    async def test_deploy_other_owners_workload_is_not_found(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(uuid4()))

        with pytest.raises(WorkloadNotFoundError):
            await deployment_service.deploy(workload.id, owner_id)

        assert runtime.calls == []

    @pytest.mark.asyncio
    async def test_deploy_rejected_while_workload_is_busy(
        self, deployment_service, repository, runtime, lock_registry, owner_id
    ):
        workload = repository.add(make_workload(owner_id))

        async with lock_registry.acquire(workload.id):
            with pytest.raises(WorkloadBusyError):
                await deployment_service.deploy(workload.id, owner_id)

        assert runtime.calls == []
        assert workload.deployment_status == DeploymentStatus.NOT_DEPLOYED.value


class TestStop:
    """Tests for stop."""

    @pytest.mark.asyncio
    async def test_stop_not_deployed_raises_without_runtime_call(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(owner_id))

        with pytest.raises(ContainerNotFoundError):
            await deployment_service.stop(workload.id, owner_id)

        assert runtime.calls == []

    @pytest.mark.asyncio
    async def test_stop_success(self, deployment_service, repository, runtime, owner_id):
        workload = repository.add(make_workload(
            owner_id,
            deployment_status=DeploymentStatus.RUNNING.value,
            container_id="abc",
            access_url="http://localhost:1234",
        ))

        result = await deployment_service.stop(workload.id, owner_id)

        assert runtime.calls == [("stop", "abc")]
        assert result.deployment_status == DeploymentStatus.STOPPED.value
        # The container is kept for a later redeploy
        assert result.container_id == "abc"
        assert result.access_url == "http://localhost:1234"

    @pytest.mark.asyncio
    async def test_stop_failure_leaves_status_unchanged(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(
            owner_id,
            deployment_status=DeploymentStatus.RUNNING.value,
            container_id="abc",
        ))
        runtime.fail_stop = runtime_failure("stop", "cannot stop")

        with pytest.raises(RuntimeFailure):
            await deployment_service.stop(workload.id, owner_id)

        assert workload.deployment_status == DeploymentStatus.RUNNING.value
        assert repository.saved_statuses == []


class TestRemove:
    """Tests for remove."""

    @pytest.mark.asyncio
    async def test_remove_not_deployed_raises(self, deployment_service, repository, runtime, owner_id):
        workload = repository.add(make_workload(owner_id))

        with pytest.raises(ContainerNotFoundError):
            await deployment_service.remove(workload.id, owner_id)

        assert runtime.calls == []

    @pytest.mark.asyncio
    async def test_remove_success_clears_deployment(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(
            owner_id,
            deployment_status=DeploymentStatus.RUNNING.value,
            container_id="abc",
            access_url="http://localhost:1234",
        ))

        failures = await deployment_service.remove(workload.id, owner_id)

        assert failures == []
        assert runtime.calls == [("remove", "abc")]
        assert workload.deployment_status == DeploymentStatus.NOT_DEPLOYED.value
        assert workload.container_id is None
        assert workload.access_url is None
        assert workload.deployed_at is None

    @pytest.mark.asyncio
    async def test_remove_clears_record_even_when_runtime_fails(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(
            owner_id,
            deployment_status=DeploymentStatus.RUNNING.value,
            container_id="abc",
        ))
        runtime.fail_remove = runtime_failure("remove", "daemon unavailable")

        failures = await deployment_service.remove(workload.id, owner_id)

        assert len(failures) == 1
        assert failures[0].operation == "remove"
        assert failures[0].target == "abc"
        assert "daemon unavailable" in failures[0].reason
        assert workload.deployment_status == DeploymentStatus.NOT_DEPLOYED.value
        assert workload.container_id is None

    @pytest.mark.asyncio
    async def test_remove_error_state_without_container_sweeps_by_name(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(owner_id, deployment_status=DeploymentStatus.ERROR.value))

        failures = await deployment_service.remove(workload.id, owner_id)

        assert failures == []
        assert runtime.calls == [("force_remove_by_name", runtime.container_name(owner_id, workload.id))]
        assert workload.deployment_status == DeploymentStatus.NOT_DEPLOYED.value


class TestGetStatus:
    """Tests for get_status."""

    @pytest.mark.asyncio
    async def test_status_without_container_raises(self, deployment_service, repository, owner_id):
        workload = repository.add(make_workload(owner_id))

        with pytest.raises(ContainerNotFoundError):
            await deployment_service.get_status(workload.id, owner_id)

    @pytest.mark.asyncio
    async def test_status_reports_not_found_container(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(
            owner_id,
            deployment_status=DeploymentStatus.RUNNING.value,
            container_id="vanished",
        ))

        status = await deployment_service.get_status(workload.id, owner_id)

        assert status.not_found
        # Reading status never changes the record
        assert workload.deployment_status == DeploymentStatus.RUNNING.value

    @pytest.mark.asyncio
    async def test_status_propagates_runtime_failure(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(
            owner_id,
            deployment_status=DeploymentStatus.RUNNING.value,
            container_id="abc",
        ))
        runtime.fail_inspect = runtime_failure("inspect", "daemon unavailable")

        with pytest.raises(RuntimeFailure):
            await deployment_service.get_status(workload.id, owner_id)


class TestDeleteWorkload:
    """Tests for delete_workload."""

    @pytest.mark.asyncio
    async def test_delete_without_container(self, deployment_service, repository, runtime, owner_id):
        workload = repository.add(make_workload(owner_id))

        failures = await deployment_service.delete_workload(workload.id, owner_id)

        assert failures == []
        assert runtime.calls == []
        assert repository.deleted == [workload.id]

    @pytest.mark.asyncio
    async def test_delete_stops_then_force_removes(self, deployment_service, repository, runtime, owner_id):
        workload = repository.add(make_workload(
            owner_id,
            deployment_status=DeploymentStatus.RUNNING.value,
            container_id="abc",
        ))

        await deployment_service.delete_workload(workload.id, owner_id)

        assert runtime.calls == [("stop", "abc"), ("force_remove", "abc")]
        assert workload.id not in repository.workloads

    @pytest.mark.asyncio
    async def test_delete_succeeds_when_teardown_fails(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(
            owner_id,
            deployment_status=DeploymentStatus.RUNNING.value,
            container_id="abc",
        ))
        runtime.fail_stop = runtime_failure("stop", "cannot stop")
        runtime.force_remove_result = SoftFailure(operation="force_remove", target="abc", reason="busy")

        failures = await deployment_service.delete_workload(workload.id, owner_id)

        assert [f.operation for f in failures] == ["stop", "force_remove"]
        assert repository.deleted == [workload.id]

    @pytest.mark.asyncio
    async def test_delete_other_owners_workload_is_not_found(self, deployment_service, repository, owner_id):
        workload = repository.add(make_workload(uuid4()))

        with pytest.raises(WorkloadNotFoundError):
            await deployment_service.delete_workload(workload.id, owner_id)

        assert repository.deleted == []


class TestListings:
    """Tests for list_deployments and list_containers."""

    @pytest.mark.asyncio
    async def test_list_deployments_excludes_not_deployed(self, deployment_service, repository, owner_id):
        running = repository.add(make_workload(owner_id, deployment_status=DeploymentStatus.RUNNING.value))
        errored = repository.add(make_workload(owner_id, deployment_status=DeploymentStatus.ERROR.value))
        repository.add(make_workload(owner_id))
        repository.add(make_workload(uuid4(), deployment_status=DeploymentStatus.RUNNING.value))

        result = await deployment_service.list_deployments(owner_id)

        assert {w.id for w in result} == {running.id, errored.id}

    @pytest.mark.asyncio
    async def test_list_containers_only_returns_owners_containers(
        self, deployment_service, repository, runtime, owner_id
    ):
        mine = repository.add(make_workload(owner_id))
        theirs_owner = uuid4()
        theirs = repository.add(make_workload(theirs_owner))

        await deployment_service.deploy(mine.id, owner_id)
        await deployment_service.deploy(theirs.id, theirs_owner)

        assert await deployment_service.list_containers(owner_id) == [mine.container_id]


class TestLifecycle:
    """End-to-end walk through the lifecycle."""

    @pytest.mark.asyncio
    async def test_deploy_stop_redeploy_remove_delete(
        self, deployment_service, repository, runtime, owner_id
    ):
        workload = repository.add(make_workload(owner_id))

        deployed = await deployment_service.deploy(workload.id, owner_id)
        first_container = deployed.container_id
        assert deployed.deployment_status == DeploymentStatus.RUNNING.value

        stopped = await deployment_service.stop(workload.id, owner_id)
        assert stopped.deployment_status == DeploymentStatus.STOPPED.value

        redeployed = await deployment_service.deploy(workload.id, owner_id)
        assert redeployed.deployment_status == DeploymentStatus.RUNNING.value
        assert redeployed.container_id != first_container
        assert first_container not in runtime.containers

        await deployment_service.remove(workload.id, owner_id)
        assert workload.deployment_status == DeploymentStatus.NOT_DEPLOYED.value
        assert await deployment_service.list_deployments(owner_id) == []

        await deployment_service.delete_workload(workload.id, owner_id)
        assert workload.id not in repository.workloads
