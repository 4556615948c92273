"""safequery - read-only database access with schema introspection and SQL safety checks."""

from .constants import VERSION as __version__
