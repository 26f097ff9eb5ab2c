"""Pytest-bdd configuration and shared fixtures for client feature tests.

Scenarios run against a real grpc server on a local port, with in-memory
servicers standing in for the Joblet daemon.
"""

import threading
import time
from concurrent import futures

import grpc
import pytest

from joblet_client import JobletClient
from joblet_client.proto.joblet import (
    DataChunk,
    Job,
    GetJobStatusResponse,
    RunJobResponse,
    CreateNetworkResponse,
    RuntimeInstallationChunk,
    RuntimeInstallationProgress,
    add_JobServiceServicer_to_server,
    add_NetworkServiceServicer_to_server,
    add_RuntimeServiceServicer_to_server,
)

# Upper bound for a servicer waiting on a client that never hangs up.
STREAM_HOLD_SECONDS = 5.0


def _hold_open(context) -> None:
    deadline = time.monotonic() + STREAM_HOLD_SECONDS
    while context.is_active() and time.monotonic() < deadline:
        time.sleep(0.01)


class FakeJobService:
    """In-memory JobService: numbered job ids, canned logs."""

    def __init__(self):
        self._lock = threading.Lock()
        self.jobs = {}
        self.logs = {}
        self.requests = []

    def RunJob(self, request, context):
        with self._lock:
            self.requests.append(request)
            job_id = f"job-{len(self.jobs) + 1:04d}"
            self.jobs[job_id] = Job(uuid=job_id, command=request.command, args=request.args, status="RUNNING")
        return RunJobResponse(job_uuid=job_id, status="RUNNING", command=request.command, args=request.args)

    def GetJobStatus(self, request, context):
        job = self.jobs.get(request.uuid)
        if job is None:
            context.abort(grpc.StatusCode.NOT_FOUND, f"job {request.uuid} not found")
        return GetJobStatusResponse(job=job)

    def GetJobLogs(self, request, context):
        if request.uuid == "forever":
            yield DataChunk(payload=b"started\n")
            _hold_open(context)
            return
        for line in self.logs.get(request.uuid, []):
            yield DataChunk(payload=line)


class FakeNetworkService:
    def __init__(self):
        self.requests = []

    def CreateNetwork(self, request, context):
        self.requests.append(request)
        return CreateNetworkResponse(name=request.name, cidr=request.cidr, bridge="joblet0")


class FakeRuntimeService:
    """Streams one progress chunk, then holds until the client goes away."""

    def __init__(self):
        self.cancelled = threading.Event()

    def StreamingInstallRuntimeFromGithub(self, request, context):
        yield RuntimeInstallationChunk(
            progress=RuntimeInstallationProgress(message=f"installing {request.runtime_spec}", step=1, total_steps=3)
        )
        _hold_open(context)
        if not context.is_active():
            self.cancelled.set()
            return
        yield RuntimeInstallationChunk(
            progress=RuntimeInstallationProgress(message="late", step=2, total_steps=3)
        )


@pytest.fixture
def context():
    """Shared test context for scenario state."""
    return {}


@pytest.fixture
def servicers():
    return {
        "job": FakeJobService(),
        "network": FakeNetworkService(),
        "runtime": FakeRuntimeService(),
    }


@pytest.fixture
def joblet_server(servicers):
    """Start a grpc server on an ephemeral port; yields the port."""
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=8))
    add_JobServiceServicer_to_server(servicers["job"], server)
    add_NetworkServiceServicer_to_server(servicers["network"], server)
    add_RuntimeServiceServicer_to_server(servicers["runtime"], server)
    port = server.add_insecure_port("localhost:0")
    server.start()
    yield port
    server.stop(0)


@pytest.fixture
def joblet_client(joblet_server):
    """Client connected to the local server through a named environment."""
    environments = {"local": {"address": f"localhost:{joblet_server}"}}
    client = JobletClient.connect("local", environments)
    yield client
    client.close()
