"""Joblet proto definitions."""

from .joblet_pb2 import (
    DESCRIPTOR,
    EmptyRequest,
    # Jobs
    FileUpload,
    RunJobRequest,
    RunJobResponse,
    Job,
    Jobs,
    GetJobStatusRequest,
    GetJobStatusResponse,
    StopJobRequest,
    StopJobResponse,
    CancelJobRequest,
    CancelJobResponse,
    DeleteJobRequest,
    DeleteJobResponse,
    DeleteAllJobsResponse,
    GetJobLogsRequest,
    DataChunk,
    JobTelemetryRequest,
    TelemetryEvent,
    # Networks
    CreateNetworkRequest,
    CreateNetworkResponse,
    Network,
    Networks,
    RemoveNetworkRequest,
    RemoveNetworkResponse,
    # Volumes
    CreateVolumeRequest,
    CreateVolumeResponse,
    Volume,
    Volumes,
    RemoveVolumeRequest,
    RemoveVolumeResponse,
    # Monitoring
    HostInfo,
    CpuMetrics,
    MemoryMetrics,
    SystemStatusResponse,
    StreamMetricsRequest,
    SystemMetricsResponse,
    # Runtimes
    RuntimeInfo,
    RuntimesResponse,
    RuntimeInfoRequest,
    RuntimeInfoResponse,
    RuntimeTestRequest,
    RuntimeTestResponse,
    InstallRuntimeRequest,
    RuntimeFile,
    InstallRuntimeFromLocalRequest,
    InstallRuntimeResponse,
    RuntimeInstallationProgress,
    RuntimeInstallationLog,
    RuntimeInstallationChunk,
    ValidateRuntimeSpecRequest,
    ValidateRuntimeSpecResponse,
    RuntimeRemoveRequest,
    RuntimeRemoveResponse,
)
from .joblet_pb2_grpc import (
    JobServiceStub,
    NetworkServiceStub,
    VolumeServiceStub,
    MonitoringServiceStub,
    RuntimeServiceStub,
    add_JobServiceServicer_to_server,
    add_NetworkServiceServicer_to_server,
    add_VolumeServiceServicer_to_server,
    add_MonitoringServiceServicer_to_server,
    add_RuntimeServiceServicer_to_server,
)

__all__ = [
    "DESCRIPTOR",
    "EmptyRequest",
    # Jobs
    "FileUpload",
    "RunJobRequest",
    "RunJobResponse",
    "Job",
    "Jobs",
    "GetJobStatusRequest",
    "GetJobStatusResponse",
    "StopJobRequest",
    "StopJobResponse",
    "CancelJobRequest",
    "CancelJobResponse",
    "DeleteJobRequest",
    "DeleteJobResponse",
    "DeleteAllJobsResponse",
    "GetJobLogsRequest",
    "DataChunk",
    "JobTelemetryRequest",
    "TelemetryEvent",
    # Networks
    "CreateNetworkRequest",
    "CreateNetworkResponse",
    "Network",
    "Networks",
    "RemoveNetworkRequest",
    "RemoveNetworkResponse",
    # Volumes
    "CreateVolumeRequest",
    "CreateVolumeResponse",
    "Volume",
    "Volumes",
    "RemoveVolumeRequest",
    "RemoveVolumeResponse",
    # Monitoring
    "HostInfo",
    "CpuMetrics",
    "MemoryMetrics",
    "SystemStatusResponse",
    "StreamMetricsRequest",
    "SystemMetricsResponse",
    # Runtimes
    "RuntimeInfo",
    "RuntimesResponse",
    "RuntimeInfoRequest",
    "RuntimeInfoResponse",
    "RuntimeTestRequest",
    "RuntimeTestResponse",
    "InstallRuntimeRequest",
    "RuntimeFile",
    "InstallRuntimeFromLocalRequest",
    "InstallRuntimeResponse",
    "RuntimeInstallationProgress",
    "RuntimeInstallationLog",
    "RuntimeInstallationChunk",
    "ValidateRuntimeSpecRequest",
    "ValidateRuntimeSpecResponse",
    "RuntimeRemoveRequest",
    "RuntimeRemoveResponse",
    # Stubs
    "JobServiceStub",
    "NetworkServiceStub",
    "VolumeServiceStub",
    "MonitoringServiceStub",
    "RuntimeServiceStub",
    # Servicer registration
    "add_JobServiceServicer_to_server",
    "add_NetworkServiceServicer_to_server",
    "add_VolumeServiceServicer_to_server",
    "add_MonitoringServiceServicer_to_server",
    "add_RuntimeServiceServicer_to_server",
]
