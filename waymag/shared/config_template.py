MAGNIFIER_SECTION = "org.waymag.plugin.magnifier"

default_config = {
    "_section_hint": (
        "General configuration settings for waymag, a panel applet that "
        "toggles a screen magnifier helper."
    ),
    "plugins": {
        "_section_hint": ("Configuration for loading and managing waymag plugins."),
        "disabled": [],
        "disabled_hint": (
            "A list of disabled plugins (e.g., ['magnifier']). "
            "These plugins will be skipped during the loading process."
        ),
    },
    "org.waymag.panel": {
        "_section_hint": "Settings for the small window that hosts the applets.",
        "title": "waymag",
        "title_hint": "Window title of the panel host.",
        "icon_size": 24,
        "icon_size_hint": "Pixel size of the applet icons.",
    },
    MAGNIFIER_SECTION: {
        "_section_hint": (
            "Virtual magnifier. Changes made here while the magnifier is "
            "running restart it with the new options."
        ),
        "helper_program": "mage",
        "helper_program_hint": (
            "Name or absolute path of the magnifier executable "
            "(e.g. /usr/bin/mage, magnifier, mouseloupe). A running magnifier "
            "restarts with the new program."
        ),
        "icon": "system-search",
        "icon_hint": "Icon name shown on the panel button.",
        "shape": "rectangle",
        "shape_hint": "Either 'circle' or 'rectangle'.",
        "width": 350,
        "width_hint": (
            "Width in pixels: 100-600 for a circle, 100-800 for a rectangle. "
            "Out-of-range values fall back to 350."
        ),
        "height": 350,
        "height_hint": "Height in pixels (50-600), rectangle only.",
        "zoom": 2,
        "zoom_hint": "Magnification factor, 2-16. Scrolling on the button changes it.",
        "static_window": False,
        "static_window_hint": (
            "Show the magnifier at a fixed position (x, y) instead of "
            "following the pointer."
        ),
        "x": 0,
        "x_hint": "Static window left edge; 'waymagctl pos' records it.",
        "y": 0,
        "y_hint": "Static window top edge; 'waymagctl pos' records it.",
        "follow_focus": False,
        "follow_focus_hint": "Follow keyboard focus.",
        "follow_text_cursor": False,
        "follow_text_cursor_hint": "Follow the text cursor.",
        "bilinear_filter": False,
        "bilinear_filter_hint": "Smooth the magnified image with bilinear filtering.",
    },
}
