"""Version information for hypr-panel."""

__version__ = "0.3.0"
