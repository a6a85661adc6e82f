"""Shared utilities for hypr-panel."""
