from typing import List
from waymag.magnifier.settings import MagnifierSettings, Shape


def build_helper_argv(program: str, settings: MagnifierSettings) -> List[str]:
    """
    Command line for the magnifier helper. The flag order is the one the
    helper has always been launched with and must stay stable.
    """
    argv = [program]
    if settings.shape is Shape.RECTANGLE:
        argv += ["-r", str(settings.width), str(settings.height)]
    else:
        argv += ["-c", str(settings.width)]
    argv += ["-z", str(settings.zoom)]
    if settings.static_window:
        argv += ["-s", str(max(0, settings.x)), str(max(0, settings.y))]
    if settings.follow_focus:
        argv.append("-m")
    if settings.follow_text_cursor:
        argv.append("-t")
    if settings.bilinear_filter:
        argv.append("-f")
    return argv
