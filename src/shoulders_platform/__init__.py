"""
Shoulders platform tooling: MCP tool server and dashboard backend
"""

from shoulders_platform._version import __version__

__all__ = ["__version__"]
