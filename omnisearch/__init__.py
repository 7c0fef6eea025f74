"""omnisearch - code search session controller backed by an external search server."""

__version__ = "0.3.0"
