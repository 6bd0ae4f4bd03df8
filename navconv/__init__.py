"""
navconv - GPS route, track and waypoint file codec.

Reads route files of many vendor dialects into a common route model and
writes them back to any dialect that supports writing.
"""

try:
    from ._version import version as __version__
    from ._version import version_tuple
except ImportError:
    # Fallback for running from source without install
    __version__ = "0.0.0.dev0"
    version_tuple = (0, 0, 0, "dev0")
