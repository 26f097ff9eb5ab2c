"""Joblet Python client library for the platform's gRPC services."""

from .client import (
    JobletClient,
    JobService,
    NetworkService,
    VolumeService,
    MonitoringService,
    RuntimeService,
    DEFAULT_TIMEOUT,
    LONG_TIMEOUT,
)
from .endpoint import (
    Endpoint,
    EndpointResolver,
    TlsMode,
    DEFAULT_ADDRESS,
    DEFAULT_ENVIRONMENT,
    DEFAULT_ENVIRONMENTS,
    ENVIRONMENT_VAR,
)
from .channel import (
    ChannelBundle,
    ServiceStubs,
    DEFAULT_CHANNEL_OPTIONS,
    build_channel,
    create_channel,
    create_stubs,
    parse_target,
)
from .calls import CallAdapter, CallFuture, translate_error
from .streams import EventKind, StreamEvent, StreamHandle, StreamRegistry
from .errors import (
    ClientError,
    ConfigError,
    CredentialError,
    ChannelError,
    ValidationError,
    TransportError,
    RpcError,
    TimeoutError,
)
from .log import configure_logging

__all__ = [
    # Clients
    "JobletClient",
    "JobService",
    "NetworkService",
    "VolumeService",
    "MonitoringService",
    "RuntimeService",
    "DEFAULT_TIMEOUT",
    "LONG_TIMEOUT",
    # Endpoints
    "Endpoint",
    "EndpointResolver",
    "TlsMode",
    "DEFAULT_ADDRESS",
    "DEFAULT_ENVIRONMENT",
    "DEFAULT_ENVIRONMENTS",
    "ENVIRONMENT_VAR",
    # Channel
    "ChannelBundle",
    "ServiceStubs",
    "DEFAULT_CHANNEL_OPTIONS",
    "build_channel",
    "create_channel",
    "create_stubs",
    "parse_target",
    # Calls and streams
    "CallAdapter",
    "CallFuture",
    "translate_error",
    "EventKind",
    "StreamEvent",
    "StreamHandle",
    "StreamRegistry",
    # Errors
    "ClientError",
    "ConfigError",
    "CredentialError",
    "ChannelError",
    "ValidationError",
    "TransportError",
    "RpcError",
    "TimeoutError",
    # Logging
    "configure_logging",
]
