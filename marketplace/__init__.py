"""B2B marketplace backend: category hierarchy, category requests and catalog API."""

__version__ = "1.0.0"
