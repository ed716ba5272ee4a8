# continuity_sync/__init__.py
# Local-first sync engine for continuity tracking projects.
__version__ = "0.1.0"
