import pytest

import containerrebuild.services.docker_commands as docker_commands_module
from containerrebuild.models import CommandResult
from containerrebuild.services.docker_commands import DockerCommandService


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


def _service(**kwargs) -> DockerCommandService:
    return DockerCommandService(logger=DummyLogger(), console=DummyConsole(), **kwargs)


def test_remove_command_forces_removal_by_name():
    assert _service().remove_command("v2ray-03") == "docker rm -f v2ray-03"


def test_run_command_binds_port_and_mounts_config_dir():
    command = _service().run_command("03", 10086, "/etc/v2ray/config-03.json")

    assert command.startswith("docker run -d --name=v2ray-03 ")
    assert "-v /etc/v2ray:/etc/v2ray" in command
    assert "-p 10086:10086" in command
    assert "--memory=80M" in command
    assert "--restart=always" in command
    assert command.endswith("v2ray/official v2ray -config=/etc/v2ray/config-03.json")


def test_run_command_uses_custom_image_and_memory():
    command = _service(image="v2fly/v2fly-core", memory="128M").run_command("1", 443, "/etc/v2ray/config-1.json")

    assert "--memory=128M" in command
    assert "v2fly/v2fly-core" in command


def test_inspect_command_reads_running_state():
    assert _service().inspect_running_command("v2ray-01") == "docker inspect -f '{{.State.Running}}' v2ray-01"


def test_wait_until_running_polls_until_true(monkeypatch):
    monkeypatch.setattr(docker_commands_module.time, "sleep", lambda *_args, **_kwargs: None)
    answers = iter(["false\n", "true\n"])
    commands = []

    def execute(command):
        commands.append(command)
        return CommandResult(command=command, exit_status=0, stdout=next(answers))

    assert _service().wait_until_running("v2ray-01", execute, max_retries=3, backoff_seconds=0) is True
    assert len(commands) == 2


@pytest.mark.parametrize("exit_status,stdout", [(0, "false\n"), (1, "")])
def test_wait_until_running_gives_up_after_retries(monkeypatch, exit_status, stdout):
    monkeypatch.setattr(docker_commands_module.time, "sleep", lambda *_args, **_kwargs: None)
    calls = []

    def execute(command):
        calls.append(command)
        return CommandResult(command=command, exit_status=exit_status, stdout=stdout)

    assert _service().wait_until_running("v2ray-01", execute, max_retries=2, backoff_seconds=0) is False
    assert len(calls) == 2
