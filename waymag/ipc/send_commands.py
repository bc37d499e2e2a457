"""
waymagctl: send one control command to a running waymag instance.

    waymagctl toggle          start or stop the magnifier
    waymagctl pos             store the magnifier window position as its static position
    waymagctl status          show whether the helper runs and the current settings
    waymagctl set zoom 4      change one setting (restarts a running magnifier)
    waymagctl list_commands
"""

import asyncio
import json
import os
import sys
from typing import Any, Dict, List, Optional


def get_socket_path() -> str:
    """
    Replicates the socket path derivation logic of the CommandServer.
    """
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR", "/tmp")
    return os.path.join(runtime_dir, "waymag.sock")


class Commands:
    """
    Client for communicating with the waymag control server over a UNIX domain socket.
    """

    def __init__(self, socket_path: Optional[str] = None):
        self.socket_path = socket_path if socket_path is not None else get_socket_path()

    async def _run_command_async(self, command: str, args: List[Any]) -> Dict[str, Any]:
        """
        Connects to the waymag socket, sends one command and returns the response.
        """
        try:
            reader, writer = await asyncio.open_unix_connection(self.socket_path)
        except FileNotFoundError:
            return {
                "status": "error",
                "message": f"Socket not found at {self.socket_path}. Is waymag running?",
                "command": command,
            }
        except ConnectionRefusedError:
            return {
                "status": "error",
                "message": "Connection refused.",
                "command": command,
            }
        except OSError as e:
            return {
                "status": "error",
                "message": f"Connection failed: {e}",
                "command": command,
            }
        request = {"command": command, "args": args}
        try:
            writer.write(json.dumps(request).encode() + b"\n")
            await writer.drain()
            response_data = await reader.readline()
            if not response_data:
                return {
                    "status": "error",
                    "message": "Connection closed by server before response.",
                    "command": command,
                }
            response = json.loads(response_data.decode().strip())
            response.setdefault("command", command)
            return response
        except json.JSONDecodeError:
            return {
                "status": "error",
                "message": "Invalid JSON response from server.",
                "command": command,
            }
        except OSError as e:
            return {
                "status": "error",
                "message": f"Failed to exchange data: {e}",
                "command": command,
            }
        finally:
            writer.close()
            await writer.wait_closed()

    def run_command(self, command: str, args: Optional[List[Any]] = None) -> Dict[str, Any]:
        """Executes a command synchronously by running the async client."""
        return asyncio.run(self._run_command_async(command, args or []))


def format_response(response: Dict[str, Any]) -> str:
    if response.get("status") == "ok":
        lines = [f"ok: {response.get('command', 'N/A')}"]
        data = response.get("data")
        if data is not None:
            lines.append(json.dumps(data, indent=4, sort_keys=True))
        return "\n".join(lines)
    return f"error: {response.get('message', 'Unknown Error')}"


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print(__doc__.strip())
        return 1
    response = Commands().run_command(argv[0], argv[1:])
    print(format_response(response))
    return 0 if response.get("status") == "ok" else 1


if __name__ == "__main__":
    sys.exit(main())
