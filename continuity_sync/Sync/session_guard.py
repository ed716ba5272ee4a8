# continuity_sync/Sync/session_guard.py
#
#
# Imports
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from continuity_sync.remote_api.auth import SessionProvider
from continuity_sync.Metrics.metrics_logger import log_counter
#
#######################################################################################################################
#
# Functions:

class SessionGuard:
    """
    Answers "is there a currently valid remote session?" right before a remote write.
    Never raises: a missing session or a failing check both come back as False.
    """

    def __init__(self, auth: SessionProvider):
        self.auth = auth

    async def has_active_session(self) -> bool:
        try:
            session = await self.auth.get_session()
        except Exception as e:
            logger.warning(f"[SessionGuard] Session check failed, skipping remote write: {type(e).__name__} - {e}")
            log_counter("sync_session_check_error")
            return False
        if not session:
            logger.warning("[SessionGuard] No active session, skipping remote write")
            log_counter("sync_no_session_skip")
            return False
        return True

#
# End of session_guard.py
#######################################################################################################################
