# continuity_sync/Sync/exceptions.py
#
#
# Imports
from typing import Optional
#
#######################################################################################################################
#
# Functions:

class SyncError(Exception):
    """Base exception for the sync engine."""
    pass


class PullError(SyncError):
    """Fetching or merging the remote snapshot failed. The original error is chained as __cause__."""
    def __init__(self, project_id: str, message: str):
        super().__init__(f"Pull of project {project_id} failed: {message}")
        self.project_id = project_id
        self.message = message


class UnknownCategoryError(SyncError, ValueError):
    def __init__(self, category: Optional[str]):
        super().__init__(f"Unknown change category: {category!r}")
        self.category = category

#
# End of exceptions.py
#######################################################################################################################
