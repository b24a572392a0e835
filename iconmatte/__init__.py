"""Background removal and alpha edge refinement for icon images."""

__version__ = "1.0.0"
