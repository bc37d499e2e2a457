from unittest.mock import Mock

import pytest

from waymag.ipc.server import CommandServer, get_socket_path


@pytest.fixture
def server():
    return CommandServer(Mock(), socket_path="/nonexistent/waymag.sock")


def test_socket_path_follows_runtime_dir(monkeypatch):
    monkeypatch.setenv("XDG_RUNTIME_DIR", "/run/user/1000")
    assert get_socket_path() == "/run/user/1000/waymag.sock"
    monkeypatch.delenv("XDG_RUNTIME_DIR")
    assert get_socket_path() == "/tmp/waymag.sock"


def test_handler_receives_args(server):
    handler = Mock(return_value={"data": 1})
    server.register_command("echo", handler)
    response = server.handle_line(b'{"command": "echo", "args": ["a", 2]}')
    handler.assert_called_once_with(["a", 2])
    assert response == {"data": 1, "status": "ok", "command": "echo"}


def test_scalar_args_are_wrapped(server):
    handler = Mock(return_value={})
    server.register_command("echo", handler)
    server.handle_line(b'{"command": "echo", "args": "solo"}')
    handler.assert_called_once_with(["solo"])


@pytest.mark.parametrize(
    "line, message",
    [
        (b"not json", "Invalid JSON format."),
        (b"[1, 2]", "Missing 'command' field."),
        (b'{"args": []}', "Missing 'command' field."),
        (b'{"command": "nope"}', "Unknown command: nope"),
    ],
)
def test_malformed_requests(server, line, message):
    response = server.handle_line(line)
    assert response["status"] == "error"
    assert response["message"] == message


def test_handler_errors_become_error_responses(server):
    server.register_command("boom", Mock(side_effect=RuntimeError("bad")))
    server.register_command("odd", Mock(return_value="text"))
    assert server.handle_line(b'{"command": "boom"}')["message"] == "Handler error: bad"
    assert server.handle_line(b'{"command": "odd"}')["status"] == "error"


def test_list_commands_is_built_in(server):
    response = server.handle_line(b'{"command": "list_commands"}')
    assert response["data"] == ["list_commands"]
