"""
Hand-written gRPC stubs for the services in joblet.proto.

Provides, per service:
  - <Service>Stub: client stub, one multicallable attribute per RPC
  - add_<Service>Servicer_to_server: registration function for servicers

Multicallables are derived from the service descriptors in joblet_pb2, so
each stub exposes exactly the methods the schema declares.
"""

import grpc

from . import joblet_pb2


def _methods(service_name: str):
    return joblet_pb2.DESCRIPTOR.services_by_name[service_name].methods


def _path(method) -> str:
    return f"/{method.containing_service.full_name}/{method.name}"


class _ServiceStub:
    """Binds every RPC of one service to a channel."""

    SERVICE_NAME = ""

    def __init__(self, channel) -> None:
        for method in _methods(self.SERVICE_NAME):
            request_cls = joblet_pb2.message_class(method.input_type.name)
            response_cls = joblet_pb2.message_class(method.output_type.name)
            factory = channel.unary_stream if method.server_streaming else channel.unary_unary
            setattr(
                self,
                method.name,
                factory(
                    _path(method),
                    request_serializer=request_cls.SerializeToString,
                    response_deserializer=response_cls.FromString,
                ),
            )


class JobServiceStub(_ServiceStub):
    """Client stub for calling JobService."""

    SERVICE_NAME = "JobService"


class NetworkServiceStub(_ServiceStub):
    """Client stub for calling NetworkService."""

    SERVICE_NAME = "NetworkService"


class VolumeServiceStub(_ServiceStub):
    """Client stub for calling VolumeService."""

    SERVICE_NAME = "VolumeService"


class MonitoringServiceStub(_ServiceStub):
    """Client stub for calling MonitoringService."""

    SERVICE_NAME = "MonitoringService"


class RuntimeServiceStub(_ServiceStub):
    """Client stub for calling RuntimeService."""

    SERVICE_NAME = "RuntimeService"


def _unimplemented(request, context):
    context.abort(grpc.StatusCode.UNIMPLEMENTED, "Method not implemented!")


def _add_servicer(service_name: str, servicer, server) -> None:
    rpc_method_handlers = {}
    for method in _methods(service_name):
        request_cls = joblet_pb2.message_class(method.input_type.name)
        response_cls = joblet_pb2.message_class(method.output_type.name)
        handler_factory = (
            grpc.unary_stream_rpc_method_handler
            if method.server_streaming
            else grpc.unary_unary_rpc_method_handler
        )
        rpc_method_handlers[method.name] = handler_factory(
            getattr(servicer, method.name, _unimplemented),
            request_deserializer=request_cls.FromString,
            response_serializer=response_cls.SerializeToString,
        )
    generic_handler = grpc.method_handlers_generic_handler(
        f"{joblet_pb2.PACKAGE}.{service_name}", rpc_method_handlers
    )
    server.add_generic_rpc_handlers((generic_handler,))


def add_JobServiceServicer_to_server(servicer, server) -> None:
    """Register a JobService servicer with a gRPC server."""
    _add_servicer("JobService", servicer, server)


def add_NetworkServiceServicer_to_server(servicer, server) -> None:
    """Register a NetworkService servicer with a gRPC server."""
    _add_servicer("NetworkService", servicer, server)


def add_VolumeServiceServicer_to_server(servicer, server) -> None:
    """Register a VolumeService servicer with a gRPC server."""
    _add_servicer("VolumeService", servicer, server)


def add_MonitoringServiceServicer_to_server(servicer, server) -> None:
    """Register a MonitoringService servicer with a gRPC server."""
    _add_servicer("MonitoringService", servicer, server)


def add_RuntimeServiceServicer_to_server(servicer, server) -> None:
    """Register a RuntimeService servicer with a gRPC server."""
    _add_servicer("RuntimeService", servicer, server)
