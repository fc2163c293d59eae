"""roxdoc: compile structured source comments into reference documentation."""

__version__ = "0.1.0"

__all__ = ["__version__"]
