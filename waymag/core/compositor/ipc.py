import logging
import os
import socket
from functools import wraps
from typing import Any, Dict, List, Optional

from gi.repository import GLib  # pyright: ignore

logger = logging.getLogger(__name__)


def handle_ipc_error(func):
    """Decorator to handle common IPC-related errors."""

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        if self.sock is None:
            return None
        try:
            return func(self, *args, **kwargs)
        except (socket.error, ConnectionRefusedError, BrokenPipeError) as e:
            logger.error(f"IPC connection error in '{func.__name__}': {e}")
            self.is_compositor_socket_set_up = False
            self.sock = None
            return None
        except Exception as e:
            logger.error(f"An unexpected error occurred in '{func.__name__}': {e}")
            return None

    return wrapper


class IPC:
    """
    Thin interface to the Wayfire IPC socket, limited to the view queries
    the applets need. Outside a Wayfire session every query returns None.
    """

    def __init__(self):
        self.sock: Any = None
        self.is_compositor_socket_set_up = False
        self.compositor_name = self.setup_compositor_socket()
        if self.compositor_name:
            GLib.timeout_add_seconds(5, self.ensure_ipc_connection)

    def setup_compositor_socket(self) -> Optional[str]:
        if os.getenv("WAYFIRE_SOCKET"):
            self.connect_wayfire_ipc()
            return "wayfire"
        logger.info("WAYFIRE_SOCKET is not set; compositor queries are disabled.")
        return None

    def connect_wayfire_ipc(self) -> None:
        """Initializes the connection to the Wayfire IPC socket."""
        try:
            from wayfire import WayfireSocket

            self.sock = WayfireSocket()
            self.is_compositor_socket_set_up = True
        except Exception as e:
            logger.error(f"Failed to connect to Wayfire IPC: {e}")
            self.sock = None
            self.is_compositor_socket_set_up = False

    def ensure_ipc_connection(self) -> bool:
        """
        Periodically checks if the IPC connection is active. If not, it attempts
        to re-establish the connection.
        """
        if not self.sock or not self.is_connected():
            logger.warning("Attempting to re-establish IPC connection...")
            self.setup_compositor_socket()
        return True

    @handle_ipc_error
    def list_views(self) -> Optional[List[Dict[str, Any]]]:
        """List all views managed by the compositor."""
        return self.sock.list_views()

    def is_connected(self) -> bool:
        """Check if the compositor socket is connected."""
        if self.sock:
            return self.sock.is_connected()
        return False

    @handle_ipc_error
    def close(self) -> Any:
        """Close the compositor socket connection."""
        return self.sock.close()
