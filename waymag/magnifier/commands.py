from typing import Any, Callable, Dict, List, Optional, Tuple
from waymag.magnifier.process_controller import ProcessController
from waymag.magnifier.settings import coerce_setting

PositionQuery = Callable[[], Optional[Tuple[int, int]]]


class MagnifierCommands:
    """
    Control-socket commands for the magnifier. Handlers take the argument
    list from the request and return the response dictionary.
    """

    def __init__(
        self,
        controller: ProcessController,
        position_query: PositionQuery,
        prefix: str = "",
    ):
        self.controller = controller
        self.position_query = position_query
        self.prefix = prefix

    def handlers(self) -> Dict[str, Callable[[List[Any]], Dict[str, Any]]]:
        return {
            f"{self.prefix}toggle": self.handle_toggle,
            f"{self.prefix}pos": self.handle_pos,
            f"{self.prefix}status": self.handle_status,
            f"{self.prefix}set": self.handle_set,
        }

    def register(self, server: Any) -> None:
        for name, handler in self.handlers().items():
            server.register_command(name, handler)

    def unregister(self, server: Any) -> None:
        for name in self.handlers():
            server.unregister_command(name)

    def _status_data(self) -> Dict[str, Any]:
        controller = self.controller
        return {
            "available": controller.available,
            "running": controller.is_running,
            "pending_restart": controller.pending_restart,
            "program": controller.program,
            "settings": controller.host.get_settings().to_config(),
        }

    def handle_toggle(self, args: List[Any]) -> Dict[str, Any]:
        if not self.controller.available:
            return {
                "status": "error",
                "message": f"Magnifier helper '{self.controller.program}' is not installed.",
            }
        self.controller.toggle()
        return {"status": "ok", "data": self._status_data()}

    def handle_pos(self, args: List[Any]) -> Dict[str, Any]:
        settings = self.controller.record_position(self.position_query)
        return {"status": "ok", "data": {"x": settings.x, "y": settings.y}}

    def handle_status(self, args: List[Any]) -> Dict[str, Any]:
        return {"status": "ok", "data": self._status_data()}

    def handle_set(self, args: List[Any]) -> Dict[str, Any]:
        if len(args) != 2:
            return {"status": "error", "message": "Usage: set <setting> <value>"}
        name, raw = str(args[0]), str(args[1])
        try:
            value = coerce_setting(name, raw)
        except ValueError as e:
            return {"status": "error", "message": str(e)}
        current = self.controller.host.get_settings()
        applied = self.controller.on_settings_changed(current.replace(**{name: value}))
        return {"status": "ok", "data": applied.to_config()}
