"""Interactive region transformations through an external text tool."""

__version__ = "0.1.0"
