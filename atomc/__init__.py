"""atomc: local-first atomic commit planner and executor."""

__version__ = "0.3.0"

# Version tag written into every plan, report and error envelope
SCHEMA_VERSION = "v1"

__all__ = ["__version__", "SCHEMA_VERSION"]
