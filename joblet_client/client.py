"""Client implementations for the Joblet gRPC services.

Five facades share one channel through a single CallAdapter. Unary methods
block and return the response message; streaming methods return a
StreamHandle immediately. Streaming methods accept the callbacks
``on_data``, ``on_error``, ``on_end`` and ``on_cancel``, plus ``timeout`` and
``buffer_events``.
"""

import threading
from collections.abc import Iterable, Mapping
from typing import Any, Optional, Union

import grpc
from google.protobuf import json_format
from google.protobuf.message import Message

from .calls import CallAdapter, CallFuture
from .channel import build_channel, create_stubs
from .endpoint import (
    DEFAULT_ENVIRONMENT,
    ENVIRONMENT_VAR,
    Endpoint,
    EndpointResolver,
)
from .errors import ValidationError
from .log import get_logger
from .proto.joblet import (
    EmptyRequest,
    RunJobRequest,
    RunJobResponse,
    GetJobStatusRequest,
    GetJobStatusResponse,
    StopJobRequest,
    StopJobResponse,
    CancelJobRequest,
    CancelJobResponse,
    DeleteJobRequest,
    DeleteJobResponse,
    DeleteAllJobsResponse,
    Jobs,
    GetJobLogsRequest,
    JobTelemetryRequest,
    CreateNetworkRequest,
    CreateNetworkResponse,
    Networks,
    RemoveNetworkRequest,
    RemoveNetworkResponse,
    CreateVolumeRequest,
    CreateVolumeResponse,
    Volumes,
    RemoveVolumeRequest,
    RemoveVolumeResponse,
    SystemStatusResponse,
    StreamMetricsRequest,
    RuntimesResponse,
    RuntimeInfoRequest,
    RuntimeInfoResponse,
    RuntimeTestRequest,
    RuntimeTestResponse,
    InstallRuntimeRequest,
    InstallRuntimeFromLocalRequest,
    InstallRuntimeResponse,
    RuntimeFile,
    ValidateRuntimeSpecRequest,
    ValidateRuntimeSpecResponse,
    RuntimeRemoveRequest,
    RuntimeRemoveResponse,
)
from .streams import StreamHandle, StreamRegistry
from .validation import (
    require_cidr,
    require_flag,
    require_identifier,
    require_non_negative,
    require_not_empty,
    require_optional_string,
    require_strings,
    require_volume_size,
    require_volume_type,
)

logger = get_logger(__name__)

# Deadlines the platform's own client applies per operation.
DEFAULT_TIMEOUT = 10.0
LONG_TIMEOUT = 30.0

LocalFile = Union[RuntimeFile, tuple[str, bytes]]


def _coerce(request: Union[Message, Mapping[str, Any]], message_cls) -> Message:
    """Accept a request message or a dict of its fields."""
    if isinstance(request, message_cls):
        return request
    if isinstance(request, Mapping):
        try:
            return json_format.ParseDict(dict(request), message_cls())
        except json_format.ParseError as e:
            raise ValidationError(str(e)) from e
    raise ValidationError(
        f"expected {message_cls.DESCRIPTOR.name} or a mapping, got {type(request).__name__}"
    )


def _runtime_files(files: Iterable[LocalFile]) -> list:
    if isinstance(files, (str, bytes, RuntimeFile)):
        raise ValidationError("runtime files must be a list of files, not a single value")
    try:
        items = list(files)
    except TypeError:
        raise ValidationError(f"runtime files must be a list, got {type(files).__name__}") from None
    result = []
    for item in items:
        if isinstance(item, RuntimeFile):
            result.append(item)
            continue
        try:
            path, content = item
        except (TypeError, ValueError):
            raise ValidationError("runtime files must be RuntimeFile or (path, content) pairs") from None
        require_identifier(path, "runtime file path")
        if isinstance(content, str):
            content = content.encode()
        elif not isinstance(content, (bytes, bytearray)):
            raise ValidationError(
                f"runtime file {path!r} content must be bytes or str, got {type(content).__name__}"
            )
        else:
            content = bytes(content)
        result.append(RuntimeFile(path=path, content=content))
    return result


class _ServiceFacade:
    """Shared plumbing: one stub, the shared adapter, and the RPC table."""

    SERVICE_NAME = ""
    # operation name -> RPC name
    OPERATIONS: dict[str, str] = {}

    def __init__(self, stub, calls: CallAdapter):
        self._stub = stub
        self._calls = calls

    def _method_name(self, rpc: str) -> str:
        return f"{self.SERVICE_NAME}.{rpc}"

    def _unary(self, rpc: str, request: Message, timeout: Optional[float]):
        return self._calls.call(getattr(self._stub, rpc), request, self._method_name(rpc), timeout)

    def _future(self, rpc: str, request: Message, timeout: Optional[float]) -> CallFuture:
        return self._calls.invoke(getattr(self._stub, rpc), request, self._method_name(rpc), timeout)

    def _stream(self, rpc: str, request: Message, **callbacks) -> StreamHandle:
        return self._calls.subscribe(
            getattr(self._stub, rpc), request, self._method_name(rpc), **callbacks
        )


class JobService(_ServiceFacade):
    """Job control: run, inspect, stop and remove jobs, and follow their output."""

    SERVICE_NAME = "JobService"
    OPERATIONS = {
        "run": "RunJob",
        "get_status": "GetJobStatus",
        "stop": "StopJob",
        "cancel": "CancelJob",
        "delete": "DeleteJob",
        "delete_all": "DeleteAllJobs",
        "list": "ListJobs",
        "get_logs": "GetJobLogs",
        "stream_telemetry": "StreamJobTelemetry",
        "get_telemetry": "GetJobTelemetry",
    }

    @staticmethod
    def _run_request(request: Union[RunJobRequest, Mapping[str, Any]]) -> RunJobRequest:
        req = _coerce(request, RunJobRequest)
        if not req.command.strip():
            raise ValidationError("command must not be empty")
        require_non_negative(req.max_cpu, "max_cpu")
        require_non_negative(req.max_memory, "max_memory")
        require_non_negative(req.max_iobps, "max_iobps")
        require_non_negative(req.gpu_count, "gpu_count")
        require_non_negative(req.gpu_memory_mb, "gpu_memory_mb")
        return req

    def run(
        self,
        request: Union[RunJobRequest, Mapping[str, Any]],
        timeout: Optional[float] = LONG_TIMEOUT,
    ) -> RunJobResponse:
        """Start a job, e.g. ``run({"command": "python3", "args": ["app.py"]})``."""
        return self._unary("RunJob", self._run_request(request), timeout)

    def run_async(
        self,
        request: Union[RunJobRequest, Mapping[str, Any]],
        timeout: Optional[float] = LONG_TIMEOUT,
    ) -> CallFuture:
        """Start a job without blocking; the future resolves to RunJobResponse."""
        return self._future("RunJob", self._run_request(request), timeout)

    def get_status(self, job_id: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> GetJobStatusResponse:
        uuid = require_identifier(job_id, "job id")
        return self._unary("GetJobStatus", GetJobStatusRequest(uuid=uuid), timeout)

    def stop(self, job_id: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> StopJobResponse:
        """Stop a running job."""
        uuid = require_identifier(job_id, "job id")
        return self._unary("StopJob", StopJobRequest(uuid=uuid), timeout)

    def cancel(self, job_id: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> CancelJobResponse:
        """Cancel a scheduled job before it starts."""
        uuid = require_identifier(job_id, "job id")
        return self._unary("CancelJob", CancelJobRequest(uuid=uuid), timeout)

    def delete(self, job_id: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> DeleteJobResponse:
        uuid = require_identifier(job_id, "job id")
        return self._unary("DeleteJob", DeleteJobRequest(uuid=uuid), timeout)

    def delete_all(self, timeout: Optional[float] = LONG_TIMEOUT) -> DeleteAllJobsResponse:
        """Delete every non-running job."""
        return self._unary("DeleteAllJobs", EmptyRequest(), timeout)

    def list(self, timeout: Optional[float] = DEFAULT_TIMEOUT) -> Jobs:
        return self._unary("ListJobs", EmptyRequest(), timeout)

    def get_logs(self, job_id: str, **callbacks) -> StreamHandle:
        """Stream a job's output as DataChunk messages."""
        uuid = require_identifier(job_id, "job id")
        return self._stream("GetJobLogs", GetJobLogsRequest(uuid=uuid), **callbacks)

    def stream_telemetry(self, job_id: str, types: Iterable[str] = (), **callbacks) -> StreamHandle:
        """Follow live telemetry for a running job."""
        uuid = require_identifier(job_id, "job id")
        request = JobTelemetryRequest(uuid=uuid, types=require_strings(types, "telemetry types"))
        return self._stream("StreamJobTelemetry", request, **callbacks)

    def get_telemetry(self, job_id: str, types: Iterable[str] = (), **callbacks) -> StreamHandle:
        """Replay recorded telemetry for a job."""
        uuid = require_identifier(job_id, "job id")
        request = JobTelemetryRequest(uuid=uuid, types=require_strings(types, "telemetry types"))
        return self._stream("GetJobTelemetry", request, **callbacks)


class NetworkService(_ServiceFacade):
    """Network management."""

    SERVICE_NAME = "NetworkService"
    OPERATIONS = {
        "create": "CreateNetwork",
        "list": "ListNetworks",
        "remove": "RemoveNetwork",
    }

    def create(self, name: str, cidr: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> CreateNetworkResponse:
        request = CreateNetworkRequest(
            name=require_identifier(name, "network name"),
            cidr=require_cidr(cidr),
        )
        return self._unary("CreateNetwork", request, timeout)

    def list(self, timeout: Optional[float] = DEFAULT_TIMEOUT) -> Networks:
        return self._unary("ListNetworks", EmptyRequest(), timeout)

    def remove(self, name: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> RemoveNetworkResponse:
        request = RemoveNetworkRequest(name=require_identifier(name, "network name"))
        return self._unary("RemoveNetwork", request, timeout)


class VolumeService(_ServiceFacade):
    """Volume management."""

    SERVICE_NAME = "VolumeService"
    OPERATIONS = {
        "create": "CreateVolume",
        "list": "ListVolumes",
        "remove": "RemoveVolume",
    }

    def create(
        self,
        name: str,
        size: str,
        type: str = "filesystem",
        timeout: Optional[float] = LONG_TIMEOUT,
    ) -> CreateVolumeResponse:
        request = CreateVolumeRequest(
            name=require_identifier(name, "volume name"),
            size=require_volume_size(size),
            type=require_volume_type(type),
        )
        return self._unary("CreateVolume", request, timeout)

    def list(self, timeout: Optional[float] = DEFAULT_TIMEOUT) -> Volumes:
        return self._unary("ListVolumes", EmptyRequest(), timeout)

    def remove(self, name: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> RemoveVolumeResponse:
        request = RemoveVolumeRequest(name=require_identifier(name, "volume name"))
        return self._unary("RemoveVolume", request, timeout)


class MonitoringService(_ServiceFacade):
    """Host status and metrics."""

    SERVICE_NAME = "MonitoringService"
    OPERATIONS = {
        "get_system_status": "GetSystemStatus",
        "stream_system_metrics": "StreamSystemMetrics",
    }

    def get_system_status(self, timeout: Optional[float] = DEFAULT_TIMEOUT) -> SystemStatusResponse:
        return self._unary("GetSystemStatus", EmptyRequest(), timeout)

    def stream_system_metrics(
        self,
        interval_seconds: int = 5,
        metric_types: Iterable[str] = (),
        **callbacks,
    ) -> StreamHandle:
        """Stream SystemMetricsResponse samples every ``interval_seconds``."""
        request = StreamMetricsRequest(
            interval_seconds=require_non_negative(interval_seconds, "interval_seconds"),
            metric_types=require_strings(metric_types, "metric types"),
        )
        return self._stream("StreamSystemMetrics", request, **callbacks)


class RuntimeService(_ServiceFacade):
    """Runtime management, including long-running installs."""

    SERVICE_NAME = "RuntimeService"
    OPERATIONS = {
        "list": "ListRuntimes",
        "get_info": "GetRuntimeInfo",
        "test": "TestRuntime",
        "install_from_github": "InstallRuntimeFromGithub",
        "install_from_local": "InstallRuntimeFromLocal",
        "streaming_install_from_github": "StreamingInstallRuntimeFromGithub",
        "streaming_install_from_local": "StreamingInstallRuntimeFromLocal",
        "validate_spec": "ValidateRuntimeSpec",
        "remove": "RemoveRuntime",
    }

    @staticmethod
    def _github_request(
        runtime_spec: str,
        repository: str,
        branch: str,
        path: str,
        force_reinstall: bool,
    ) -> InstallRuntimeRequest:
        return InstallRuntimeRequest(
            runtime_spec=require_identifier(runtime_spec, "runtime spec"),
            repository=require_optional_string(repository, "repository"),
            branch=require_optional_string(branch, "branch"),
            path=require_optional_string(path, "path"),
            force_reinstall=require_flag(force_reinstall, "force_reinstall"),
        )

    @staticmethod
    def _local_request(
        runtime_spec: str,
        files: Iterable[LocalFile],
        force_reinstall: bool,
    ) -> InstallRuntimeFromLocalRequest:
        spec = require_identifier(runtime_spec, "runtime spec")
        runtime_files = _runtime_files(files)
        require_not_empty(runtime_files, "runtime files")
        return InstallRuntimeFromLocalRequest(
            runtime_spec=spec,
            files=runtime_files,
            force_reinstall=require_flag(force_reinstall, "force_reinstall"),
        )

    def list(self, timeout: Optional[float] = DEFAULT_TIMEOUT) -> RuntimesResponse:
        return self._unary("ListRuntimes", EmptyRequest(), timeout)

    def get_info(self, name: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> RuntimeInfoResponse:
        request = RuntimeInfoRequest(runtime=require_identifier(name, "runtime name"))
        return self._unary("GetRuntimeInfo", request, timeout)

    def test(self, name: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> RuntimeTestResponse:
        """Run the runtime's self-test on the server."""
        request = RuntimeTestRequest(runtime=require_identifier(name, "runtime name"))
        return self._unary("TestRuntime", request, timeout)

    def install_from_github(
        self,
        runtime_spec: str,
        repository: str = "",
        branch: str = "",
        path: str = "",
        force_reinstall: bool = False,
        timeout: Optional[float] = LONG_TIMEOUT,
    ) -> InstallRuntimeResponse:
        """Install a runtime such as ``python-3.11-ml`` from a GitHub repository.

        Empty repository, branch and path fall back to the server's registry.
        """
        request = self._github_request(runtime_spec, repository, branch, path, force_reinstall)
        return self._unary("InstallRuntimeFromGithub", request, timeout)

    def install_from_local(
        self,
        runtime_spec: str,
        files: Iterable[LocalFile],
        force_reinstall: bool = False,
        timeout: Optional[float] = LONG_TIMEOUT,
    ) -> InstallRuntimeResponse:
        request = self._local_request(runtime_spec, files, force_reinstall)
        return self._unary("InstallRuntimeFromLocal", request, timeout)

    def streaming_install_from_github(
        self,
        runtime_spec: str,
        repository: str = "",
        branch: str = "",
        path: str = "",
        force_reinstall: bool = False,
        **callbacks,
    ) -> StreamHandle:
        """Install from GitHub, streaming RuntimeInstallationChunk progress."""
        request = self._github_request(runtime_spec, repository, branch, path, force_reinstall)
        return self._stream("StreamingInstallRuntimeFromGithub", request, **callbacks)

    def streaming_install_from_local(
        self,
        runtime_spec: str,
        files: Iterable[LocalFile],
        force_reinstall: bool = False,
        **callbacks,
    ) -> StreamHandle:
        request = self._local_request(runtime_spec, files, force_reinstall)
        return self._stream("StreamingInstallRuntimeFromLocal", request, **callbacks)

    def validate_spec(self, runtime_spec: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> ValidateRuntimeSpecResponse:
        request = ValidateRuntimeSpecRequest(
            runtime_spec=require_identifier(runtime_spec, "runtime spec")
        )
        return self._unary("ValidateRuntimeSpec", request, timeout)

    def remove(self, name: str, timeout: Optional[float] = LONG_TIMEOUT) -> RuntimeRemoveResponse:
        request = RuntimeRemoveRequest(runtime=require_identifier(name, "runtime name"))
        return self._unary("RemoveRuntime", request, timeout)


class JobletClient:
    """Combined client for all five Joblet services over one channel."""

    FACADES = ("job", "network", "volume", "monitoring", "runtime")

    def __init__(self, channel: grpc.Channel, endpoint: Optional[Endpoint] = None, stubs=None):
        self._channel = channel
        self.endpoint = endpoint
        self._stubs = stubs if stubs is not None else create_stubs(channel)
        self._streams = StreamRegistry()
        self._calls = CallAdapter(self._streams)
        self._close_lock = threading.Lock()
        self.job = JobService(self._stubs.job, self._calls)
        self.network = NetworkService(self._stubs.network, self._calls)
        self.volume = VolumeService(self._stubs.volume, self._calls)
        self.monitoring = MonitoringService(self._stubs.monitoring, self._calls)
        self.runtime = RuntimeService(self._stubs.runtime, self._calls)

    @classmethod
    def connect(
        cls,
        environment: Union[str, Endpoint] = DEFAULT_ENVIRONMENT,
        environments: Optional[Mapping[str, Mapping[str, Any]]] = None,
        options=None,
    ) -> "JobletClient":
        """Connect to a named environment, or to an explicit Endpoint.

        Without ``environments`` only the built-in ``default`` environment
        (localhost:50051, insecure) is known.
        """
        if isinstance(environment, Endpoint):
            endpoint = environment
        else:
            resolver = (
                EndpointResolver(environments)
                if environments is not None
                else EndpointResolver.default()
            )
            endpoint = resolver.resolve(environment)
        bundle = build_channel(endpoint, options)
        return cls(bundle.channel, endpoint, bundle.stubs)

    @classmethod
    def from_env(
        cls,
        env_var: str = ENVIRONMENT_VAR,
        default: str = DEFAULT_ENVIRONMENT,
        environments: Optional[Mapping[str, Mapping[str, Any]]] = None,
        options=None,
    ) -> "JobletClient":
        """Connect using an environment variable naming the environment."""
        name = EndpointResolver.name_from_env(env_var, default)
        return cls.connect(name, environments, options)

    @property
    def closed(self) -> bool:
        return self._streams.closed

    def active_streams(self) -> list[StreamHandle]:
        """Return the streams that have not yet ended."""
        return self._streams.active()

    def close(self) -> None:
        """Cancel every active stream, then close the underlying channel."""
        with self._close_lock:
            if self._streams.closed:
                return
            cancelled = self._streams.close()
            self._channel.close()
        name = self.endpoint.name if self.endpoint else None
        logger.info("client_closed", environment=name, streams_cancelled=cancelled)

    def __enter__(self) -> "JobletClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
