from typing import Dict

PALETTES: Dict[str, Dict[str, str]] = {
    "dark": {
        "accent": "cyan",
        "text": "white",
        "muted": "grey50",
        "success": "green",
        "error": "red",
        "warning": "yellow",
    },
    "light": {
        "accent": "blue",
        "text": "black",
        "muted": "grey42",
        "success": "dark_green",
        "error": "dark_red",
        "warning": "dark_orange",
    },
    "mono": {
        "accent": "bold",
        "text": "default",
        "muted": "dim",
        "success": "default",
        "error": "reverse",
        "warning": "underline",
    },
}


def palette(name: str) -> Dict[str, str]:
    """Colour map for ``name``; unknown names fall back to dark."""
    return PALETTES.get(name, PALETTES["dark"])
