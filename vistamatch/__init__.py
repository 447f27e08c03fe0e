"""VistaMatch: photo-driven travel destination recommendations."""

__version__ = "0.1.0"
