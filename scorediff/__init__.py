"""scorediff: aligns measure/beat annotated diff documents onto one timeline."""

__version__ = "0.1.0"
