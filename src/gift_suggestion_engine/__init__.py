"""Gift recommendation engine: catalog scoring, external blending, and pagination."""

__version__ = "1.0.0"
