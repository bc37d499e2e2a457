import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional
from waymag.core.log_setup import setup_logging
from waymag.ipc.server import CommandServer


def global_exception_handler(exc_type, exc_value, exc_traceback):
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logger = logging.getLogger()
    logger.error(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback),
        extra={"thread_name": threading.current_thread().name},
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="waymag", description="Panel applet for the virtual magnifier."
    )
    parser.add_argument("--debug", action="store_true", help="log at DEBUG level")
    parser.add_argument(
        "--no-control-socket",
        action="store_true",
        help="do not listen for waymagctl commands",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logger = setup_logging(level=logging.DEBUG if args.debug else logging.INFO)
    sys.excepthook = global_exception_handler
    from gi.repository import GLib  # pyright: ignore
    from waymag.panel import Panel

    ipc_server = None if args.no_control_socket else CommandServer(logger)
    app = Panel(logger, ipc_server)
    GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signal.SIGTERM, app.quit)
    GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signal.SIGINT, app.quit)
    logger.info("Starting waymag...")
    return app.run([sys.argv[0]])


if __name__ == "__main__":
    sys.exit(main())
