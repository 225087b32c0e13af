"""Version information for shoulders-platform."""

import importlib.metadata

try:
    __version__ = importlib.metadata.version("shoulders-platform")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.2.0+dev"
