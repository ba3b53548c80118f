"""
Container runtime adapter backed by the Docker CLI.

This is the only module that invokes the container engine. Every call runs
the docker binary as a subprocess and captures exit code, stdout and stderr.
"""
import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from app.core.config import settings
from app.core.exceptions import RuntimeFailure
from app.services.deployment.runtime_base import (
    NOT_FOUND_STATE,
    CommandResult,
    ContainerRuntime,
    ContainerStatus,
    SoftFailure,
)

logger = logging.getLogger(__name__)

# stderr fragments the engine prints for unknown ids and names
_NOT_FOUND_MARKERS = ("No such container", "No such object")


def _is_not_found(stderr: str) -> bool:
    return any(marker in stderr for marker in _NOT_FOUND_MARKERS)


def _parse_docker_time(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an engine RFC3339 timestamp into a naive UTC datetime.

    The engine reports "0001-01-01T00:00:00Z" for events that never happened.
    """
    if not value or value.startswith("0001-01-01"):
        return None
    try:
        # Sub-second precision is nanoseconds, which fromisoformat rejects
        return datetime.fromisoformat(value.split(".")[0].rstrip("Z"))
    except ValueError:
        return None


def _host_ports(container: Dict[str, Any]) -> List[str]:
    """Host ports bound by a container, from `docker inspect` output."""
    ports = []
    bindings = (container.get("NetworkSettings") or {}).get("Ports") or {}
    for mappings in bindings.values():
        for binding in mappings or []:
            host_port = binding.get("HostPort")
            if host_port:
                ports.append(str(host_port))
    return ports


class DockerRuntime(ContainerRuntime):
    """
    Runtime adapter for a local Docker daemon.

    Responsibilities:
    - Run detached containers with a host port binding and environment
    - Inspect, stop and remove containers by id
    - Best-effort force removal by id or by derived name
    - List an owner's containers by name prefix
    """

    def __init__(
        self,
        docker_binary: str = None,
        container_prefix: str = None,
        default_image: str = None,
        command_timeout: Optional[float] = None,
    ):
        """
        Initialize the Docker runtime.

        Args:
            docker_binary: Docker CLI executable
            container_prefix: Prefix for container names
            default_image: Image used when a run call names none
            command_timeout: Seconds before a docker command is killed; None waits forever
        """
        self.docker_binary = docker_binary or settings.DOCKER_BINARY
        self.container_prefix = container_prefix or settings.DEPLOYMENT_CONTAINER_PREFIX
        self.default_image = default_image or settings.DEPLOYMENT_DEFAULT_IMAGE
        self.command_timeout = (
            command_timeout if command_timeout is not None else settings.DOCKER_COMMAND_TIMEOUT
        )

    def _build_run_command(
        self,
        name: str,
        host_port: int,
        container_port: int,
        image: Optional[str],
        env_assignments: List[str],
        memory_limit_gb: Optional[float] = None,
        cpu_limit: Optional[float] = None,
    ) -> List[str]:
        """
        Build the docker run arguments.

        Arguments are passed to the engine as an argv list, so environment
        values containing spaces or quotes need no shell escaping.
        """
        cmd = [
            "run",
            "-d",  # Detached mode
            "--name", name,
            "-p", f"{host_port}:{container_port}",
        ]

        for assignment in env_assignments:
            cmd.extend(["-e", assignment])

        # Resource limits
        if memory_limit_gb:
            cmd.extend(["--memory", f"{int(memory_limit_gb * 1024)}m"])
        if cpu_limit:
            cmd.extend(["--cpus", str(cpu_limit)])

        cmd.append(image or self.default_image)
        return cmd

    async def _run_docker_command(self, args: List[str]) -> CommandResult:
        """
        Run a docker command via subprocess.

        Args:
            args: Arguments after the docker binary

        Returns:
            CommandResult with exit code and decoded output streams
        """
        cmd = [self.docker_binary, *args]
        logger.debug(f"Running Docker command: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except Exception as e:
            logger.error(f"Docker command failed to start: {e}")
            return CommandResult(return_code=-1, stderr=str(e))

        try:
            if self.command_timeout:
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(),
                    timeout=self.command_timeout,
                )
            else:
                stdout, stderr = await process.communicate()
        except asyncio.TimeoutError:
            logger.error(f"Docker command timed out: {' '.join(cmd)}")
            process.kill()
            await process.wait()
            return CommandResult(return_code=-1, stderr="Command timed out")

        return CommandResult(
            return_code=process.returncode,
            stdout=stdout.decode().strip() if stdout else "",
            stderr=stderr.decode().strip() if stderr else "",
        )

    async def run(
        self,
        name: str,
        host_port: int,
        container_port: int,
        image: Optional[str],
        env_assignments: List[str],
        memory_limit_gb: Optional[float] = None,
        cpu_limit: Optional[float] = None,
    ) -> str:
        cmd = self._build_run_command(
            name, host_port, container_port, image, env_assignments, memory_limit_gb, cpu_limit,
        )
        logger.info(f"Starting container {name} ({image or self.default_image}) on host port {host_port}")

        result = await self._run_docker_command(cmd)
        if not result.ok:
            logger.error(f"Failed to start container {name}: {result.stderr}")
            raise RuntimeFailure("run", result.stderr, result.return_code)

        # stdout is the full container id
        container_id = result.stdout.strip()
        if not container_id:
            raise RuntimeFailure("run", "Container engine returned no container id", result.return_code)

        logger.info(f"Container {name} started with id {container_id}")
        return container_id

    async def inspect(self, runtime_id: str) -> ContainerStatus:
        result = await self._run_docker_command(["inspect", runtime_id])

        if not result.ok:
            if _is_not_found(result.stderr):
                return ContainerStatus(
                    id=runtime_id,
                    state=NOT_FOUND_STATE,
                    status="Container not found or removed",
                )
            raise RuntimeFailure("inspect", result.stderr, result.return_code)

        try:
            container = json.loads(result.stdout)[0]
        except (json.JSONDecodeError, IndexError, TypeError) as e:
            logger.error(f"Failed to parse inspect output for {runtime_id}: {e}")
            raise RuntimeFailure("inspect", f"Unparseable inspect output: {e}", result.return_code)

        state = container.get("State") or {}
        return ContainerStatus(
            id=runtime_id,
            name=(container.get("Name") or "unknown").lstrip("/"),
            state=state.get("Status") or "unknown",
            status=state.get("Status") or "unknown",
            created=_parse_docker_time(container.get("Created")),
            started_at=_parse_docker_time(state.get("StartedAt")),
            finished_at=_parse_docker_time(state.get("FinishedAt")),
            exit_code=state.get("ExitCode"),
            error=state.get("Error") or None,
            ports=_host_ports(container),
        )

    async def stop(self, runtime_id: str) -> None:
        if not runtime_id:
            raise ValueError("Container ID cannot be empty")

        logger.info(f"Stopping container {runtime_id}")
        result = await self._run_docker_command(["stop", runtime_id])
        if not result.ok:
            logger.error(f"Failed to stop container {runtime_id}: {result.stderr}")
            raise RuntimeFailure("stop", result.stderr, result.return_code)

        logger.info(f"Container {runtime_id} stopped")

    async def remove(self, runtime_id: str) -> None:
        if not runtime_id:
            raise ValueError("Container ID cannot be empty")

        result = await self._run_docker_command(["rm", "-f", runtime_id])
        if not result.ok:
            if _is_not_found(result.stderr):
                logger.info(f"Container {runtime_id} already gone")
                return
            logger.error(f"Failed to remove container {runtime_id}: {result.stderr}")
            raise RuntimeFailure("remove", result.stderr, result.return_code)

        logger.info(f"Container {runtime_id} removed")

    async def _force_remove(self, target: str, operation: str) -> Optional[SoftFailure]:
        try:
            result = await self._run_docker_command(["rm", "-f", target])
        except Exception as e:
            logger.warning(f"Exception during {operation} of {target}: {e}")
            return SoftFailure(operation=operation, target=target, reason=str(e))

        if result.ok or _is_not_found(result.stderr):
            logger.info(f"Container {target} force removed")
            return None

        logger.warning(f"Failed to force remove container {target}: {result.stderr}")
        return SoftFailure(operation=operation, target=target, reason=result.stderr or "Unknown error")

    async def force_remove(self, runtime_id: str) -> Optional[SoftFailure]:
        return await self._force_remove(runtime_id, "force_remove")

    async def force_remove_by_name(self, name: str) -> Optional[SoftFailure]:
        logger.info(f"Force removing container by name: {name}")
        return await self._force_remove(name, "force_remove_by_name")

    async def list_for_owner(self, owner_id: UUID) -> List[str]:
        prefix = self.owner_prefix(owner_id)
        result = await self._run_docker_command([
            "ps", "-a",
            "--filter", f"name=^/?{prefix}",
            "--format", "{{.ID}} {{.Names}}",
        ])
        if not result.ok:
            logger.error(f"Failed to list containers for owner {owner_id}: {result.stderr}")
            raise RuntimeFailure("list", result.stderr, result.return_code)

        container_ids = []
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) < 2:
                continue
            container_id, names = parts[0], parts[1]
            # The name filter is a substring/regex match; keep exact prefix matches only
            if any(n.lstrip("/").startswith(prefix) for n in names.split(",")):
                container_ids.append(container_id)
        return container_ids


# Singleton instance
docker_runtime = DockerRuntime()
