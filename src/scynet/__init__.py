"""Community network simplification for multi-organism metabolic models."""

__version__ = "0.1.0"

__all__ = ["__version__"]
