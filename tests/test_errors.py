"""Tests for error types."""

import grpc
import pytest

from joblet_client.errors import (
    ClientError,
    ConfigError,
    CredentialError,
    ChannelError,
    ValidationError,
    TransportError,
    RpcError,
    TimeoutError,
)

from .fixtures import MockRpcError


class TestClientError:
    """Tests for the ClientError base class."""

    def test_message_only(self) -> None:
        err = ClientError("something went wrong")
        assert err.message == "something went wrong"
        assert err.cause is None
        assert str(err) == "something went wrong"

    def test_with_cause(self) -> None:
        """Error with underlying cause."""
        cause = ValueError("underlying issue")
        err = ClientError("wrapper", cause)
        assert err.cause is cause
        assert str(err) == "wrapper: underlying issue"


class TestPrefixedErrors:
    """Local failures carry a category prefix."""

    @pytest.mark.parametrize(
        "cls, prefix",
        [
            (ConfigError, "invalid configuration"),
            (ChannelError, "channel error"),
            (ValidationError, "invalid request"),
            (CredentialError, "invalid credentials"),
        ],
    )
    def test_prefix(self, cls, prefix) -> None:
        err = cls("detail")
        assert str(err) == f"{prefix}: detail"
        assert isinstance(err, ClientError)

    def test_credential_error_keeps_cause(self) -> None:
        cause = FileNotFoundError("no such file")
        err = CredentialError("cannot read CA certificate", cause)
        assert err.cause is cause
        assert str(err) == "invalid credentials: cannot read CA certificate: no such file"


class TestTransportError:
    def test_wraps_cause(self) -> None:
        cause = OSError("socket error")
        err = TransportError("JobService.GetJobLogs", cause)
        assert err.method_name == "JobService.GetJobLogs"
        assert str(err) == "JobService.GetJobLogs transport error: socket error"


class TestRpcError:
    """Tests for RpcError."""

    def test_carries_code_message_and_method(self) -> None:
        err = RpcError("JobService.GetJobStatus", MockRpcError(grpc.StatusCode.NOT_FOUND, "job not found"))
        assert err.code == grpc.StatusCode.NOT_FOUND
        assert err.message == "job not found"
        assert err.details == "job not found"
        assert err.method_name == "JobService.GetJobStatus"
        assert str(err) == "JobService.GetJobStatus: NOT_FOUND: job not found"

    def test_empty_details_fall_back_to_code_name(self) -> None:
        err = RpcError("NetworkService.ListNetworks", MockRpcError(grpc.StatusCode.INTERNAL))
        assert err.message == "INTERNAL"

    def test_plain_rpc_error_is_unknown(self) -> None:
        """grpc.RpcError without code() maps to UNKNOWN."""
        err = RpcError("VolumeService.ListVolumes", grpc.RpcError())
        assert err.code == grpc.StatusCode.UNKNOWN

    @pytest.mark.parametrize(
        "code, predicate",
        [
            (grpc.StatusCode.NOT_FOUND, "is_not_found"),
            (grpc.StatusCode.ALREADY_EXISTS, "is_already_exists"),
            (grpc.StatusCode.INVALID_ARGUMENT, "is_invalid_argument"),
            (grpc.StatusCode.FAILED_PRECONDITION, "is_precondition_failed"),
            (grpc.StatusCode.UNAVAILABLE, "is_unavailable"),
        ],
    )
    def test_status_predicates(self, code, predicate) -> None:
        err = RpcError("JobService.RunJob", MockRpcError(code, "x"))
        assert getattr(err, predicate)()
        other = RpcError("JobService.RunJob", MockRpcError(grpc.StatusCode.INTERNAL, "x"))
        assert not getattr(other, predicate)()


class TestTimeoutError:
    def test_message_with_timeout(self) -> None:
        err = TimeoutError("JobService.RunJob", 30.0)
        assert err.code == grpc.StatusCode.DEADLINE_EXCEEDED
        assert err.timeout == 30.0
        assert str(err) == "JobService.RunJob timed out after 30.0s"

    def test_message_without_timeout(self) -> None:
        err = TimeoutError("JobService.RunJob")
        assert str(err) == "JobService.RunJob timed out"

    def test_is_not_builtin_timeout(self) -> None:
        assert isinstance(TimeoutError("m"), ClientError)
