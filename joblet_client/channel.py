"""Channel construction for Joblet endpoints.

One channel is built per client and shared by the five service stubs. grpc
connects lazily, so nothing here touches the network.
"""

import os
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

import grpc

from .endpoint import Endpoint, TlsMode
from .errors import ChannelError, CredentialError
from .log import get_logger
from .proto.joblet import (
    JobServiceStub,
    NetworkServiceStub,
    VolumeServiceStub,
    MonitoringServiceStub,
    RuntimeServiceStub,
)

logger = get_logger(__name__)

# Keepalive and idle settings the platform's own clients use.
DEFAULT_CHANNEL_OPTIONS: tuple[tuple[str, int], ...] = (
    ("grpc.keepalive_time_ms", 30000),
    ("grpc.keepalive_timeout_ms", 5000),
    ("grpc.keepalive_permit_without_calls", 1),
    ("grpc.http2.max_pings_without_data", 0),
    ("grpc.client_idle_timeout_ms", 300000),
)

PEM_MARKER = "-----BEGIN"


@dataclass(frozen=True)
class ServiceStubs:
    """Exactly one stub per service domain, all bound to one channel."""

    job: JobServiceStub
    network: NetworkServiceStub
    volume: VolumeServiceStub
    monitoring: MonitoringServiceStub
    runtime: RuntimeServiceStub


@dataclass(frozen=True)
class ChannelBundle:
    """A channel together with the stubs derived from it."""

    channel: grpc.Channel
    stubs: ServiceStubs


def parse_target(address: str) -> str:
    """Validate an endpoint address and return the grpc target string.

    Supports both TCP (host:port) and Unix Domain Sockets. UDS paths are
    detected by leading '/' or './' and converted to unix: URIs; grpc-python
    uses unix:path for relative, unix:///path for absolute.
    """
    if not address or address != address.strip():
        raise ChannelError(f"cannot parse address {address!r}")
    if address.startswith("./"):
        return f"unix:{address}"
    if address.startswith("/"):
        return f"unix://{address}"
    if address.startswith("unix:"):
        if len(address) == len("unix:"):
            raise ChannelError(f"cannot parse address {address!r}")
        return address

    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ChannelError(f"address {address!r} must be host:port")
    if host.startswith("["):
        if not host.endswith("]") or len(host) == 2:
            raise ChannelError(f"cannot parse address {address!r}")
    elif ":" in host:
        raise ChannelError(f"IPv6 address {address!r} must be bracketed")
    if not port.isdigit() or not 0 < int(port) < 65536:
        raise ChannelError(f"invalid port in address {address!r}")
    return address


def load_pem(value: Optional[str], what: str) -> bytes:
    """Return PEM bytes from inline PEM text or a path to a PEM file."""
    if value is None or not str(value).strip():
        raise CredentialError(f"{what} is missing")
    text = str(value).strip()
    if text.startswith(PEM_MARKER):
        return text.encode()
    path = os.path.expanduser(text)
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise CredentialError(f"cannot read {what} from {path}", e) from e
    if not data.strip():
        raise CredentialError(f"{what} file {path} is empty")
    return data


def channel_credentials(endpoint: Endpoint) -> grpc.ChannelCredentials:
    """Build mutual-TLS credentials for a tls endpoint."""
    root = load_pem(endpoint.ca_cert, "CA certificate")
    chain = load_pem(endpoint.client_cert, "client certificate")
    key = load_pem(endpoint.client_key, "client key")
    return grpc.ssl_channel_credentials(
        root_certificates=root,
        private_key=key,
        certificate_chain=chain,
    )


def _merge_options(
    options: Optional[Iterable[tuple[str, object]]],
) -> list[tuple[str, object]]:
    merged = dict(DEFAULT_CHANNEL_OPTIONS)
    if options:
        merged.update(options)
    return list(merged.items())


def create_channel(
    endpoint: Endpoint,
    options: Optional[Iterable[tuple[str, object]]] = None,
) -> grpc.Channel:
    """Create a gRPC channel for the endpoint.

    Insecure endpoints never read certificate fields. TLS endpoints load all
    credential material before the channel exists, so a bad file fails here
    rather than on the first call.
    """
    target = parse_target(endpoint.address)
    channel_options = _merge_options(options)
    if endpoint.tls_mode is TlsMode.INSECURE:
        logger.info("channel_created", environment=endpoint.name, target=target, tls=False)
        return grpc.insecure_channel(target, options=channel_options)

    credentials = channel_credentials(endpoint)
    logger.info("channel_created", environment=endpoint.name, target=target, tls=True)
    return grpc.secure_channel(target, credentials, options=channel_options)


def create_stubs(channel: grpc.Channel) -> ServiceStubs:
    """Bind one stub per service domain to the channel."""
    return ServiceStubs(
        job=JobServiceStub(channel),
        network=NetworkServiceStub(channel),
        volume=VolumeServiceStub(channel),
        monitoring=MonitoringServiceStub(channel),
        runtime=RuntimeServiceStub(channel),
    )


def build_channel(
    endpoint: Endpoint,
    options: Optional[Iterable[tuple[str, object]]] = None,
) -> ChannelBundle:
    """Build the shared channel and its five stubs for an endpoint."""
    channel = create_channel(endpoint, options)
    return ChannelBundle(channel=channel, stubs=create_stubs(channel))
