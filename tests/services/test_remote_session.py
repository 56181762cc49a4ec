import socket

import paramiko
import pytest

from containerrebuild.errors import RemoteConnectionError, RemoteExecutionError
import containerrebuild.services.remote_session as remote_session_module
from containerrebuild.services.remote_session import RemoteSession


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


class FakeChannel:
    """Delivers queued (stream, chunk) pairs the way a paramiko channel does."""

    def __init__(self, chunks, exit_status, exits=True):
        self.chunks = list(chunks)
        self.exit_status = exit_status
        self.exits = exits

    def _ready(self, stream):
        return bool(self.chunks) and self.chunks[0][0] == stream

    def recv_ready(self):
        return self._ready("out")

    def recv_stderr_ready(self):
        return self._ready("err")

    def recv(self, _size):
        return self.chunks.pop(0)[1]

    def recv_stderr(self, _size):
        return self.chunks.pop(0)[1]

    def exit_status_ready(self):
        return self.exits and not self.chunks

    def recv_exit_status(self):
        return self.exit_status


class FakeStream:
    def __init__(self, channel):
        self.channel = channel


class FakeClient:
    def __init__(self, connect_error=None, exec_error=None, chunks=(), exit_status=0, exits=True):
        self.connect_error = connect_error
        self.exec_error = exec_error
        self.chunks = chunks
        self.exit_status = exit_status
        self.exits = exits
        self.connect_kwargs = None
        self.commands = []
        self.close_calls = 0

    def set_missing_host_key_policy(self, _policy):
        return None

    def connect(self, **kwargs):
        self.connect_kwargs = kwargs
        if self.connect_error:
            raise self.connect_error

    def exec_command(self, command, timeout=None):
        self.commands.append((command, timeout))
        if self.exec_error:
            raise self.exec_error
        channel = FakeChannel(self.chunks, self.exit_status, exits=self.exits)
        return None, FakeStream(channel), FakeStream(channel)

    def close(self):
        self.close_calls += 1


def _open(client, **kwargs):
    return RemoteSession.open(
        address="10.0.0.1",
        port=2222,
        username="root",
        password="secret",
        logger=DummyLogger(),
        client_factory=lambda: client,
        **kwargs,
    )


def test_open_passes_credentials_to_client():
    client = FakeClient()

    session = _open(client, connect_timeout=5.0)

    assert client.connect_kwargs["hostname"] == "10.0.0.1"
    assert client.connect_kwargs["port"] == 2222
    assert client.connect_kwargs["password"] == "secret"
    assert client.connect_kwargs["timeout"] == 5.0
    assert session.closed is False


def test_open_raises_connection_error_on_auth_rejection():
    client = FakeClient(connect_error=paramiko.AuthenticationException("denied"))

    with pytest.raises(RemoteConnectionError, match="authentication rejected"):
        _open(client)

    assert client.commands == []
    assert client.close_calls == 1


def test_open_raises_connection_error_on_network_failure():
    client = FakeClient(connect_error=OSError("No route to host"))

    with pytest.raises(RemoteConnectionError, match="No route to host"):
        _open(client)


def test_execute_returns_decoded_output_and_status():
    client = FakeClient(chunks=[("out", b"HEADER\n"), ("err", b"warn"), ("out", b"line\n")], exit_status=1)
    session = _open(client, command_timeout=30.0)

    result = session.execute("docker ps -a")

    assert result.stdout == "HEADER\nline\n"
    assert result.stderr == "warn"
    assert result.exit_status == 1
    assert client.commands == [("docker ps -a", 30.0)]


def test_execute_timeout_raises_execution_error():
    client = FakeClient(exec_error=socket.timeout())
    session = _open(client, command_timeout=0.5)

    with pytest.raises(RemoteExecutionError, match="timed out"):
        session.execute("docker ps -a")


def test_execute_transport_failure_raises_execution_error():
    client = FakeClient(exec_error=paramiko.SSHException("channel closed"))
    session = _open(client)

    with pytest.raises(RemoteExecutionError, match="channel closed"):
        session.execute("docker ps -a")


def test_context_manager_closes_exactly_once():
    client = FakeClient()

    with _open(client) as session:
        session.close()

    assert client.close_calls == 1
    with pytest.raises(RemoteExecutionError, match="already closed"):
        session.execute("docker ps -a")


def test_execute_drains_stderr_while_reading_stdout():
    chunks = [("err", b"e" * 1024) for _ in range(64)] + [("out", b"HEADER\n"), ("out", b"v2ray-01\n")]
    client = FakeClient(chunks=chunks)
    session = _open(client)

    result = session.execute("docker ps -a")

    assert result.stdout == "HEADER\nv2ray-01\n"
    assert len(result.stderr) == 64 * 1024


def test_execute_times_out_when_command_never_exits(monkeypatch):
    clock = iter(range(100))
    monkeypatch.setattr(remote_session_module.time, "monotonic", lambda: next(clock))
    monkeypatch.setattr(remote_session_module.time, "sleep", lambda *_args, **_kwargs: None)
    client = FakeClient(chunks=[("out", b"partial")], exits=False)
    session = _open(client, command_timeout=3.0)

    with pytest.raises(RemoteExecutionError, match="timed out after 3.0s"):
        session.execute("docker ps -a")
