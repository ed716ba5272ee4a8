# continuity_sync/remote_api/__init__.py
from .client import RemoteStoreClient
from .auth import SessionProvider, TokenSessionProvider
from .exceptions import (
    RemoteStoreError, APIConnectionError, APIRequestError,
    APIResponseError, AuthenticationError
)
from .schemas import (
    SceneRow, CharacterRow, LookRow, ContinuityEventRow, PhotoRow,
    ScheduleDataRow, CallSheetDataRow, ScriptUploadRow,
    SceneCharacterLink, LookSceneLink,
    PhotoAngle, ScheduleStatus
)

__all__ = [
    "RemoteStoreClient", "SessionProvider", "TokenSessionProvider",
    "RemoteStoreError", "APIConnectionError", "APIRequestError",
    "APIResponseError", "AuthenticationError",
    "SceneRow", "CharacterRow", "LookRow", "ContinuityEventRow", "PhotoRow",
    "ScheduleDataRow", "CallSheetDataRow", "ScriptUploadRow",
    "SceneCharacterLink", "LookSceneLink",
    "PhotoAngle", "ScheduleStatus"
]
