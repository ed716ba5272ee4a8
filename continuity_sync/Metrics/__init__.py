# continuity_sync/Metrics/__init__.py
