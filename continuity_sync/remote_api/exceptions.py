# continuity_sync/remote_api/exceptions.py
#
#
#######################################################################################################################
#
# Functions:

class RemoteStoreError(Exception):
    """Base exception for remote store errors."""
    pass

class APIConnectionError(RemoteStoreError):
    """Raised for network or connection issues (DNS, refused connection, timeouts)."""
    pass

class APIResponseError(RemoteStoreError):
    """Raised for non-2xx responses or issues parsing the response."""
    def __init__(self, status_code: int, message: str, response_data: dict = None):
        super().__init__(f"API Error {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.response_data = response_data or {}

class APIRequestError(APIResponseError):
    """Raised when the backend rejects the request content (bad columns, constraint violations)."""
    pass

class AuthenticationError(RemoteStoreError):
    """Raised for authentication failures (missing, expired or revoked session)."""
    pass

#
# End of continuity_sync/remote_api/exceptions.py
########################################################################################################################
