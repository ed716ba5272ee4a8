# continuity_sync/remote_api/auth.py
# Session lookups against the backend's auth endpoint. Sign-in itself happens elsewhere;
# this module only answers "is the token we hold still good, and whose is it?"
#
# Imports
from typing import Optional, Dict, Any, Protocol
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from .client import RemoteStoreClient
#
#######################################################################################################################
#
# Functions:

class SessionProvider(Protocol):
    async def get_session(self) -> Optional[Dict[str, Any]]: ...

    def get_current_user_id(self) -> Optional[str]: ...


class TokenSessionProvider:
    """SessionProvider backed by the access token held by a RemoteStoreClient."""

    def __init__(self, client: RemoteStoreClient):
        self.client = client
        self._user_id: Optional[str] = None

    async def get_session(self) -> Optional[Dict[str, Any]]:
        user = await self.client.get_user()
        if not user:
            if self._user_id:
                logger.info(f"[Auth] Session for user {self._user_id} is no longer valid")
            self._user_id = None
            return None
        self._user_id = user.get("id")
        return {"user": user, "access_token": self.client.access_token}

    def get_current_user_id(self) -> Optional[str]:
        """Last user id confirmed by get_session(); None before the first successful check."""
        return self._user_id

#
# End of auth.py
#######################################################################################################################
