"""
bgtheme error taxonomy.

DecodeError and ClusteringError abort the current derivation. ConfigError is
raised by loaders and handled by falling back to the packaged defaults.
CacheError never escapes the cache layer.
"""


class ThemeError(Exception):
    """Base class for derivation failures."""
    pass


class DecodeError(ThemeError):
    """Image could not be read or decoded."""
    pass


class ClusteringError(ThemeError):
    """Clustering input was degenerate (e.g. no samples)."""
    pass


class ConfigError(ThemeError):
    """Malformed defaults, avoidance or state document."""
    pass


class CacheError(ThemeError):
    """Cache backend I/O or deserialization failure."""
    pass


class StoreError(ThemeError):
    """Resolved theme could not be written to the theme store."""
    pass
