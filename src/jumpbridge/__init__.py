"""Jump bridge connectivity resolver for containerised mobile development."""

__version__ = "0.1.0"
