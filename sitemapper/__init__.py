"""
Sitemapper package initializer.
Defines package version and exposes CLI.
"""
__version__ = "1.0.0"

# Expose CLI entry point
from .cli import cli  # noqa: E402

__all__ = ["__version__", "cli"]
