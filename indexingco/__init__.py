"""Command-line client and terminal dashboard for the Indexing Co pipeline API.

The modules here wrap the REST endpoints for pipelines, filters and
transformations and drive the interactive dashboard in ``indexingco.tui``.
"""

__all__ = ["config", "domain", "errors", "services", "cli", "tui"]
__version__ = "0.3.0"
