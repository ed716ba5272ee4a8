# continuity_sync/DB/__init__.py
