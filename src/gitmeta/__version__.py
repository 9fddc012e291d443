"""Version information for gitmeta.

Single source of truth for version number.
"""

__version__ = "0.3.0"
__version_info__ = tuple(int(part) for part in __version__.split("."))

# Version history:
# 0.3.0 - Token cache pruning, Prometheus textfile metrics
# 0.2.0 - Per-thread JSONL conversations in the archive
# 0.1.0 - Initial release (text digest + raw JSON archive)
