import os
from typing import Any, Dict, List, Optional, Tuple
import structlog

logger = structlog.get_logger(__name__)


def _geometry_origin(view: Dict[str, Any]) -> Optional[Tuple[int, int]]:
    geometry = view.get("geometry")
    if not isinstance(geometry, dict):
        return None
    x, y = geometry.get("x"), geometry.get("y")
    if not isinstance(x, int) or not isinstance(y, int):
        return None
    return x, y


def _is_candidate(view: Dict[str, Any]) -> bool:
    return view.get("mapped", True) and view.get("role", "toplevel") == "toplevel"


def pick_helper_view(
    views: List[Dict[str, Any]], program: str
) -> Optional[Dict[str, Any]]:
    """
    The view showing the magnifier: one whose app-id matches the helper's
    executable name, otherwise the most recently focused toplevel.
    """
    candidates = [v for v in views if isinstance(v, dict) and _is_candidate(v)]
    if not candidates:
        return None
    name = os.path.basename(program).lower()
    for view in candidates:
        if str(view.get("app-id", "")).lower() == name:
            return view
    return max(candidates, key=lambda v: v.get("last-focus-timestamp", 0) or 0)


def query_helper_position(ipc: Any, program: str) -> Optional[Tuple[int, int]]:
    """
    Asks the compositor where the magnifier window is. Returns None on any
    failure; callers keep their previous position in that case.
    """
    if ipc is None:
        return None
    try:
        views = ipc.list_views()
    except Exception as e:
        logger.warning(f"Listing views for the magnifier position failed: {e}")
        return None
    if not views:
        return None
    view = pick_helper_view(views, program)
    if view is None:
        return None
    return _geometry_origin(view)
