import os
import socket
from typing import Any, Callable, Dict, List, Optional
import orjson as json

CommandHandler = Callable[[List[Any]], Dict[str, Any]]


def get_socket_path() -> str:
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR", "/tmp")
    return os.path.join(runtime_dir, "waymag.sock")


class CommandServer:
    """
    JSON-lines command server on a UNIX socket, driven by the GLib main loop
    so every handler runs on the GTK thread.

    Request:  {"command": "toggle", "args": []}
    Response: {"status": "ok" | "error", "command": "toggle", ...}
    """

    def __init__(self, logger, socket_path: Optional[str] = None):
        self.logger = logger
        self.socket_path = socket_path or get_socket_path()
        self.command_handlers: Dict[str, CommandHandler] = {}
        self._server_socket: Optional[socket.socket] = None
        self._server_source: Optional[int] = None
        self._clients: Dict[socket.socket, Dict[str, Any]] = {}
        self.register_command("list_commands", self._handle_list_commands)

    def register_command(self, command_name: str, handler: CommandHandler) -> None:
        if command_name in self.command_handlers:
            self.logger.warning(f"Overwriting IPC command handler for: {command_name}")
        self.command_handlers[command_name] = handler
        self.logger.debug(f"IPC command registered: {command_name}")

    def unregister_command(self, command_name: str) -> None:
        self.command_handlers.pop(command_name, None)

    def _handle_list_commands(self, args: List[Any]) -> Dict[str, Any]:
        return {"status": "ok", "data": sorted(self.command_handlers)}

    def handle_line(self, raw_data: bytes) -> Dict[str, Any]:
        """Parses one request line and returns the response dictionary."""
        try:
            message = json.loads(raw_data)
        except json.JSONDecodeError as e:
            self.logger.error(f"Failed to parse client IPC message: {e}")
            return {"status": "error", "message": "Invalid JSON format."}
        if not isinstance(message, dict) or not message.get("command"):
            return {"status": "error", "message": "Missing 'command' field."}
        command = message["command"]
        args = message.get("args", [])
        if not isinstance(args, list):
            args = [args]
        handler = self.command_handlers.get(command)
        if handler is None:
            return {
                "status": "error",
                "command": command,
                "message": f"Unknown command: {command}",
            }
        self.logger.debug(f"Handling IPC command: {command}")
        try:
            response = handler(args)
        except Exception as e:
            self.logger.error(f"Error executing command '{command}': {e}")
            return {
                "status": "error",
                "command": command,
                "message": f"Handler error: {e}",
            }
        if not isinstance(response, dict):
            self.logger.error(f"Handler for {command} did not return a dictionary.")
            return {
                "status": "error",
                "command": command,
                "message": "Server error: Handler did not return valid format.",
            }
        response.setdefault("status", "ok")
        response.setdefault("command", command)
        return response

    def start(self) -> bool:
        """Binds the socket and attaches it to the default GLib main context."""
        from gi.repository import GLib  # pyright: ignore

        self._remove_stale_socket()
        try:
            server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            server.bind(self.socket_path)
            server.listen(8)
            server.setblocking(False)
        except OSError as e:
            self.logger.error(f"Could not listen on {self.socket_path}: {e}")
            return False
        self._server_socket = server
        self._server_source = GLib.io_add_watch(
            server, GLib.PRIORITY_DEFAULT, GLib.IO_IN, self._on_accept
        )
        self.logger.info(f"Control socket listening on {self.socket_path}")
        return True

    def _remove_stale_socket(self) -> None:
        if os.path.exists(self.socket_path):
            try:
                os.remove(self.socket_path)
            except OSError as e:
                self.logger.warning(f"Could not remove stale socket {self.socket_path}: {e}")

    def _on_accept(self, source, condition) -> bool:
        from gi.repository import GLib  # pyright: ignore

        try:
            conn, _ = self._server_socket.accept()  # pyright: ignore
        except BlockingIOError:
            return GLib.SOURCE_CONTINUE
        except OSError as e:
            self.logger.error(f"Accepting control connection failed: {e}")
            return GLib.SOURCE_CONTINUE
        conn.setblocking(False)
        source_id = GLib.io_add_watch(
            conn,
            GLib.PRIORITY_DEFAULT,
            GLib.IO_IN | GLib.IO_HUP | GLib.IO_ERR,
            lambda _fd, cond: self._on_client_event(conn, cond),
        )
        self._clients[conn] = {"source": source_id, "buffer": b""}
        return GLib.SOURCE_CONTINUE

    def _on_client_event(self, conn: socket.socket, condition) -> bool:
        from gi.repository import GLib  # pyright: ignore

        state = self._clients.get(conn)
        if state is None:
            return GLib.SOURCE_REMOVE
        try:
            chunk = conn.recv(4096)
        except BlockingIOError:
            return GLib.SOURCE_CONTINUE
        except OSError as e:
            self.logger.debug(f"Control client read failed: {e}")
            chunk = b""
        if not chunk:
            self._drop_client(conn, remove_source=False)
            return GLib.SOURCE_REMOVE
        state["buffer"] += chunk
        while b"\n" in state["buffer"]:
            line, state["buffer"] = state["buffer"].split(b"\n", 1)
            line = line.strip()
            if not line:
                continue
            response = self.handle_line(line)
            try:
                conn.sendall(json.dumps(response) + b"\n")
            except OSError as e:
                self.logger.debug(f"Control client went away before reply: {e}")
                self._drop_client(conn, remove_source=False)
                return GLib.SOURCE_REMOVE
        return GLib.SOURCE_CONTINUE

    def _drop_client(self, conn: socket.socket, remove_source: bool = True) -> None:
        from gi.repository import GLib  # pyright: ignore

        state = self._clients.pop(conn, None)
        if state and remove_source:
            GLib.source_remove(state["source"])
        try:
            conn.close()
        except OSError:
            pass

    def stop(self) -> None:
        from gi.repository import GLib  # pyright: ignore

        for conn in list(self._clients):
            self._drop_client(conn)
        if self._server_source is not None:
            GLib.source_remove(self._server_source)
            self._server_source = None
        if self._server_socket is not None:
            self._server_socket.close()
            self._server_socket = None
            self._remove_stale_socket()
