"""hypr-panel: status feeds for a Hyprland desktop panel."""

from .version import __version__

__all__ = ["__version__"]
