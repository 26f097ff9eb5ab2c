"""Joblet wire schema.

Built at import time from ``descriptor_pb2`` instead of protoc output, so the
client installs without a proto toolchain. The layout mirrors ``joblet.proto``
in this directory; keep the two in step.
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

_F = descriptor_pb2.FieldDescriptorProto

_STRING = _F.TYPE_STRING
_BYTES = _F.TYPE_BYTES
_BOOL = _F.TYPE_BOOL
_INT32 = _F.TYPE_INT32
_INT64 = _F.TYPE_INT64
_DOUBLE = _F.TYPE_DOUBLE

PACKAGE = "joblet"

_file = descriptor_pb2.FileDescriptorProto(
    name="joblet/joblet.proto", package=PACKAGE, syntax="proto3"
)


def _field(name, number, kind, repeated=False, oneof=None):
    """Describe a field. ``kind`` is a scalar type or a message name."""
    return name, number, kind, repeated, oneof


def _entry_name(field_name: str) -> str:
    return "".join(part.capitalize() for part in field_name.split("_")) + "Entry"


def _message(name, *fields, maps=(), oneofs=()):
    """Add a message type; ``maps`` lists ``map<string, string>`` fields."""
    msg = _file.message_type.add(name=name)
    for oneof_name in oneofs:
        msg.oneof_decl.add(name=oneof_name)
    for field_name, number, kind, repeated, oneof in fields:
        field = msg.field.add(
            name=field_name,
            number=number,
            label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
        )
        if isinstance(kind, str):
            field.type = _F.TYPE_MESSAGE
            field.type_name = f".{PACKAGE}.{kind}"
        else:
            field.type = kind
        if oneof is not None:
            field.oneof_index = oneofs.index(oneof)
    for field_name, number in maps:
        entry_name = _entry_name(field_name)
        entry = msg.nested_type.add(name=entry_name)
        entry.options.map_entry = True
        entry.field.add(name="key", number=1, type=_STRING, label=_F.LABEL_OPTIONAL)
        entry.field.add(name="value", number=2, type=_STRING, label=_F.LABEL_OPTIONAL)
        msg.field.add(
            name=field_name,
            number=number,
            type=_F.TYPE_MESSAGE,
            label=_F.LABEL_REPEATED,
            type_name=f".{PACKAGE}.{name}.{entry_name}",
        )


def _service(name, *methods):
    """Add a service; each method is (name, request, response, server_streaming)."""
    service = _file.service.add(name=name)
    for method_name, request, response, streaming in methods:
        service.method.add(
            name=method_name,
            input_type=f".{PACKAGE}.{request}",
            output_type=f".{PACKAGE}.{response}",
            server_streaming=streaming,
        )


_message("EmptyRequest")

# Jobs
_message(
    "FileUpload",
    _field("path", 1, _STRING),
    _field("content", 2, _BYTES),
    _field("mode", 3, _INT32),
    _field("is_directory", 4, _BOOL),
)
_message(
    "RunJobRequest",
    _field("name", 1, _STRING),
    _field("command", 2, _STRING),
    _field("args", 3, _STRING, repeated=True),
    _field("max_cpu", 4, _INT32),
    _field("cpu_cores", 5, _STRING),
    _field("max_memory", 6, _INT32),
    _field("max_iobps", 7, _INT32),
    _field("runtime", 8, _STRING),
    _field("network", 9, _STRING),
    _field("volumes", 10, _STRING, repeated=True),
    _field("schedule", 11, _STRING),
    _field("working_dir", 12, _STRING),
    _field("gpu_count", 13, _INT32),
    _field("gpu_memory_mb", 14, _INT64),
    _field("uploads", 17, "FileUpload", repeated=True),
    maps=(("environment", 15), ("secret_environment", 16)),
)
_message(
    "RunJobResponse",
    _field("job_uuid", 1, _STRING),
    _field("status", 2, _STRING),
    _field("command", 3, _STRING),
    _field("args", 4, _STRING, repeated=True),
    _field("created_time", 5, _STRING),
    _field("scheduled_time", 6, _STRING),
    _field("name", 7, _STRING),
)
_message(
    "Job",
    _field("uuid", 1, _STRING),
    _field("name", 2, _STRING),
    _field("command", 3, _STRING),
    _field("args", 4, _STRING, repeated=True),
    _field("status", 5, _STRING),
    _field("start_time", 6, _STRING),
    _field("end_time", 7, _STRING),
    _field("exit_code", 8, _INT32),
    _field("max_cpu", 9, _INT32),
    _field("max_memory", 10, _INT32),
    _field("max_iobps", 11, _INT32),
    _field("cpu_cores", 12, _STRING),
    _field("runtime", 13, _STRING),
    _field("network", 14, _STRING),
    _field("volumes", 15, _STRING, repeated=True),
    _field("scheduled_time", 16, _STRING),
    _field("node_id", 17, _STRING),
)
_message("Jobs", _field("jobs", 1, "Job", repeated=True))
_message("GetJobStatusRequest", _field("uuid", 1, _STRING))
_message("GetJobStatusResponse", _field("job", 1, "Job"))
_message("StopJobRequest", _field("uuid", 1, _STRING))
_message(
    "StopJobResponse",
    _field("uuid", 1, _STRING),
    _field("status", 2, _STRING),
    _field("end_time", 3, _STRING),
    _field("exit_code", 4, _INT32),
)
_message("CancelJobRequest", _field("uuid", 1, _STRING))
_message(
    "CancelJobResponse",
    _field("uuid", 1, _STRING),
    _field("status", 2, _STRING),
)
_message("DeleteJobRequest", _field("uuid", 1, _STRING))
_message(
    "DeleteJobResponse",
    _field("uuid", 1, _STRING),
    _field("success", 2, _BOOL),
    _field("message", 3, _STRING),
)
_message(
    "DeleteAllJobsResponse",
    _field("success", 1, _BOOL),
    _field("message", 2, _STRING),
    _field("deleted_count", 3, _INT32),
    _field("skipped_count", 4, _INT32),
)
_message("GetJobLogsRequest", _field("uuid", 1, _STRING))
_message("DataChunk", _field("payload", 1, _BYTES))
_message(
    "JobTelemetryRequest",
    _field("uuid", 1, _STRING),
    _field("types", 2, _STRING, repeated=True),
)
_message(
    "TelemetryEvent",
    _field("job_uuid", 1, _STRING),
    _field("timestamp", 2, _INT64),
    _field("type", 3, _STRING),
    _field("cpu_percent", 4, _DOUBLE),
    _field("memory_bytes", 5, _INT64),
    _field("memory_limit_bytes", 6, _INT64),
    _field("io_read_bytes", 7, _INT64),
    _field("io_write_bytes", 8, _INT64),
    _field("net_rx_bytes", 9, _INT64),
    _field("net_tx_bytes", 10, _INT64),
    _field("payload", 11, _STRING),
)

# Networks
_message(
    "CreateNetworkRequest",
    _field("name", 1, _STRING),
    _field("cidr", 2, _STRING),
)
_message(
    "CreateNetworkResponse",
    _field("name", 1, _STRING),
    _field("cidr", 2, _STRING),
    _field("bridge", 3, _STRING),
)
_message(
    "Network",
    _field("name", 1, _STRING),
    _field("cidr", 2, _STRING),
    _field("bridge", 3, _STRING),
    _field("job_count", 4, _INT32),
)
_message("Networks", _field("networks", 1, "Network", repeated=True))
_message("RemoveNetworkRequest", _field("name", 1, _STRING))
_message(
    "RemoveNetworkResponse",
    _field("success", 1, _BOOL),
    _field("message", 2, _STRING),
)

# Volumes
_message(
    "CreateVolumeRequest",
    _field("name", 1, _STRING),
    _field("size", 2, _STRING),
    _field("type", 3, _STRING),
)
_message(
    "CreateVolumeResponse",
    _field("name", 1, _STRING),
    _field("size", 2, _STRING),
    _field("type", 3, _STRING),
    _field("path", 4, _STRING),
)
_message(
    "Volume",
    _field("name", 1, _STRING),
    _field("size", 2, _STRING),
    _field("type", 3, _STRING),
    _field("path", 4, _STRING),
    _field("created_time", 5, _STRING),
    _field("job_count", 6, _INT32),
)
_message("Volumes", _field("volumes", 1, "Volume", repeated=True))
_message("RemoveVolumeRequest", _field("name", 1, _STRING))
_message(
    "RemoveVolumeResponse",
    _field("success", 1, _BOOL),
    _field("message", 2, _STRING),
)

# Monitoring
_message(
    "HostInfo",
    _field("hostname", 1, _STRING),
    _field("os", 2, _STRING),
    _field("kernel_version", 3, _STRING),
    _field("architecture", 4, _STRING),
    _field("cpu_count", 5, _INT32),
    _field("total_memory", 6, _INT64),
    _field("node_id", 7, _STRING),
    _field("server_ips", 8, _STRING, repeated=True),
)
_message(
    "CpuMetrics",
    _field("cores", 1, _INT32),
    _field("usage_percent", 2, _DOUBLE),
    _field("load_average", 3, _DOUBLE, repeated=True),
)
_message(
    "MemoryMetrics",
    _field("total_bytes", 1, _INT64),
    _field("used_bytes", 2, _INT64),
    _field("available_bytes", 3, _INT64),
    _field("usage_percent", 4, _DOUBLE),
)
_message(
    "SystemStatusResponse",
    _field("timestamp", 1, _INT64),
    _field("available", 2, _BOOL),
    _field("host", 3, "HostInfo"),
    _field("cpu", 4, "CpuMetrics"),
    _field("memory", 5, "MemoryMetrics"),
)
_message(
    "StreamMetricsRequest",
    _field("interval_seconds", 1, _INT32),
    _field("metric_types", 2, _STRING, repeated=True),
)
_message(
    "SystemMetricsResponse",
    _field("timestamp", 1, _INT64),
    _field("host", 2, "HostInfo"),
    _field("cpu", 3, "CpuMetrics"),
    _field("memory", 4, "MemoryMetrics"),
)

# Runtimes
_message(
    "RuntimeInfo",
    _field("name", 1, _STRING),
    _field("language", 2, _STRING),
    _field("version", 3, _STRING),
    _field("description", 4, _STRING),
    _field("size_bytes", 5, _INT64),
    _field("available", 6, _BOOL),
)
_message("RuntimesResponse", _field("runtimes", 1, "RuntimeInfo", repeated=True))
_message("RuntimeInfoRequest", _field("runtime", 1, _STRING))
_message(
    "RuntimeInfoResponse",
    _field("runtime", 1, "RuntimeInfo"),
    _field("found", 2, _BOOL),
)
_message("RuntimeTestRequest", _field("runtime", 1, _STRING))
_message(
    "RuntimeTestResponse",
    _field("success", 1, _BOOL),
    _field("output", 2, _STRING),
    _field("error", 3, _STRING),
    _field("exit_code", 4, _INT32),
)
_message(
    "InstallRuntimeRequest",
    _field("runtime_spec", 1, _STRING),
    _field("repository", 2, _STRING),
    _field("branch", 3, _STRING),
    _field("path", 4, _STRING),
    _field("force_reinstall", 5, _BOOL),
)
_message(
    "RuntimeFile",
    _field("path", 1, _STRING),
    _field("content", 2, _BYTES),
    _field("executable", 3, _BOOL),
)
_message(
    "InstallRuntimeFromLocalRequest",
    _field("runtime_spec", 1, _STRING),
    _field("files", 2, "RuntimeFile", repeated=True),
    _field("force_reinstall", 3, _BOOL),
)
_message(
    "InstallRuntimeResponse",
    _field("build_job_uuid", 1, _STRING),
    _field("runtime_spec", 2, _STRING),
    _field("status", 3, _STRING),
    _field("message", 4, _STRING),
    _field("install_path", 5, _STRING),
)
_message(
    "RuntimeInstallationProgress",
    _field("message", 1, _STRING),
    _field("step", 2, _INT32),
    _field("total_steps", 3, _INT32),
)
_message("RuntimeInstallationLog", _field("data", 1, _BYTES))
_message(
    "RuntimeInstallationChunk",
    _field("progress", 1, "RuntimeInstallationProgress", oneof="chunk"),
    _field("log", 2, "RuntimeInstallationLog", oneof="chunk"),
    _field("result", 3, "InstallRuntimeResponse", oneof="chunk"),
    oneofs=("chunk",),
)
_message("ValidateRuntimeSpecRequest", _field("runtime_spec", 1, _STRING))
_message(
    "ValidateRuntimeSpecResponse",
    _field("valid", 1, _BOOL),
    _field("message", 2, _STRING),
    _field("normalized_spec", 3, _STRING),
)
_message("RuntimeRemoveRequest", _field("runtime", 1, _STRING))
_message(
    "RuntimeRemoveResponse",
    _field("success", 1, _BOOL),
    _field("message", 2, _STRING),
    _field("freed_space_bytes", 3, _INT64),
)

_service(
    "JobService",
    ("RunJob", "RunJobRequest", "RunJobResponse", False),
    ("GetJobStatus", "GetJobStatusRequest", "GetJobStatusResponse", False),
    ("StopJob", "StopJobRequest", "StopJobResponse", False),
    ("CancelJob", "CancelJobRequest", "CancelJobResponse", False),
    ("DeleteJob", "DeleteJobRequest", "DeleteJobResponse", False),
    ("DeleteAllJobs", "EmptyRequest", "DeleteAllJobsResponse", False),
    ("GetJobLogs", "GetJobLogsRequest", "DataChunk", True),
    ("ListJobs", "EmptyRequest", "Jobs", False),
    ("StreamJobTelemetry", "JobTelemetryRequest", "TelemetryEvent", True),
    ("GetJobTelemetry", "JobTelemetryRequest", "TelemetryEvent", True),
)
_service(
    "NetworkService",
    ("CreateNetwork", "CreateNetworkRequest", "CreateNetworkResponse", False),
    ("ListNetworks", "EmptyRequest", "Networks", False),
    ("RemoveNetwork", "RemoveNetworkRequest", "RemoveNetworkResponse", False),
)
_service(
    "VolumeService",
    ("CreateVolume", "CreateVolumeRequest", "CreateVolumeResponse", False),
    ("ListVolumes", "EmptyRequest", "Volumes", False),
    ("RemoveVolume", "RemoveVolumeRequest", "RemoveVolumeResponse", False),
)
_service(
    "MonitoringService",
    ("GetSystemStatus", "EmptyRequest", "SystemStatusResponse", False),
    ("StreamSystemMetrics", "StreamMetricsRequest", "SystemMetricsResponse", True),
)
_service(
    "RuntimeService",
    ("ListRuntimes", "EmptyRequest", "RuntimesResponse", False),
    ("GetRuntimeInfo", "RuntimeInfoRequest", "RuntimeInfoResponse", False),
    ("TestRuntime", "RuntimeTestRequest", "RuntimeTestResponse", False),
    ("InstallRuntimeFromGithub", "InstallRuntimeRequest", "InstallRuntimeResponse", False),
    ("InstallRuntimeFromLocal", "InstallRuntimeFromLocalRequest", "InstallRuntimeResponse", False),
    ("StreamingInstallRuntimeFromGithub", "InstallRuntimeRequest", "RuntimeInstallationChunk", True),
    ("StreamingInstallRuntimeFromLocal", "InstallRuntimeFromLocalRequest", "RuntimeInstallationChunk", True),
    ("ValidateRuntimeSpec", "ValidateRuntimeSpecRequest", "ValidateRuntimeSpecResponse", False),
    ("RemoveRuntime", "RuntimeRemoveRequest", "RuntimeRemoveResponse", False),
)

DESCRIPTOR = descriptor_pool.Default().AddSerializedFile(_file.SerializeToString())


def message_class(name: str):
    """Return the generated message class for a top-level message name."""
    return message_factory.GetMessageClass(DESCRIPTOR.message_types_by_name[name])


EmptyRequest = message_class("EmptyRequest")
FileUpload = message_class("FileUpload")
RunJobRequest = message_class("RunJobRequest")
RunJobResponse = message_class("RunJobResponse")
Job = message_class("Job")
Jobs = message_class("Jobs")
GetJobStatusRequest = message_class("GetJobStatusRequest")
GetJobStatusResponse = message_class("GetJobStatusResponse")
StopJobRequest = message_class("StopJobRequest")
StopJobResponse = message_class("StopJobResponse")
CancelJobRequest = message_class("CancelJobRequest")
CancelJobResponse = message_class("CancelJobResponse")
DeleteJobRequest = message_class("DeleteJobRequest")
DeleteJobResponse = message_class("DeleteJobResponse")
DeleteAllJobsResponse = message_class("DeleteAllJobsResponse")
GetJobLogsRequest = message_class("GetJobLogsRequest")
DataChunk = message_class("DataChunk")
JobTelemetryRequest = message_class("JobTelemetryRequest")
TelemetryEvent = message_class("TelemetryEvent")
CreateNetworkRequest = message_class("CreateNetworkRequest")
CreateNetworkResponse = message_class("CreateNetworkResponse")
Network = message_class("Network")
Networks = message_class("Networks")
RemoveNetworkRequest = message_class("RemoveNetworkRequest")
RemoveNetworkResponse = message_class("RemoveNetworkResponse")
CreateVolumeRequest = message_class("CreateVolumeRequest")
CreateVolumeResponse = message_class("CreateVolumeResponse")
Volume = message_class("Volume")
Volumes = message_class("Volumes")
RemoveVolumeRequest = message_class("RemoveVolumeRequest")
RemoveVolumeResponse = message_class("RemoveVolumeResponse")
HostInfo = message_class("HostInfo")
CpuMetrics = message_class("CpuMetrics")
MemoryMetrics = message_class("MemoryMetrics")
SystemStatusResponse = message_class("SystemStatusResponse")
StreamMetricsRequest = message_class("StreamMetricsRequest")
SystemMetricsResponse = message_class("SystemMetricsResponse")
RuntimeInfo = message_class("RuntimeInfo")
RuntimesResponse = message_class("RuntimesResponse")
RuntimeInfoRequest = message_class("RuntimeInfoRequest")
RuntimeInfoResponse = message_class("RuntimeInfoResponse")
RuntimeTestRequest = message_class("RuntimeTestRequest")
RuntimeTestResponse = message_class("RuntimeTestResponse")
InstallRuntimeRequest = message_class("InstallRuntimeRequest")
RuntimeFile = message_class("RuntimeFile")
InstallRuntimeFromLocalRequest = message_class("InstallRuntimeFromLocalRequest")
InstallRuntimeResponse = message_class("InstallRuntimeResponse")
RuntimeInstallationProgress = message_class("RuntimeInstallationProgress")
RuntimeInstallationLog = message_class("RuntimeInstallationLog")
RuntimeInstallationChunk = message_class("RuntimeInstallationChunk")
ValidateRuntimeSpecRequest = message_class("ValidateRuntimeSpecRequest")
ValidateRuntimeSpecResponse = message_class("ValidateRuntimeSpecResponse")
RuntimeRemoveRequest = message_class("RuntimeRemoveRequest")
RuntimeRemoveResponse = message_class("RuntimeRemoveResponse")
