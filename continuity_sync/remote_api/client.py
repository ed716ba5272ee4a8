# continuity_sync/remote_api/client.py
#
#
# Imports
import json
from typing import Optional, Dict, Any, List, Iterable, Union
from urllib.parse import quote
#
# 3rd-party Libraries
import httpx
#
# Local Imports
from .exceptions import APIConnectionError, APIRequestError, APIResponseError, AuthenticationError
from .utils import build_filter_params
from continuity_sync.Constants import DEFAULT_HTTP_TIMEOUT_SECONDS
#
########################################################################################################################
#
# Functions:

REST_PREFIX = "/rest/v1"
STORAGE_PREFIX = "/storage/v1"
AUTH_PREFIX = "/auth/v1"

# Status codes the backend uses to reject request content (bad column, constraint violation)
REJECTION_STATUS_CODES = {400, 404, 409, 422}


class RemoteStoreClient:
    """
    Async client for the shared backend: PostgREST-style tables and RPC under /rest/v1,
    object storage under /storage/v1 and the auth "current user" endpoint under /auth/v1.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def set_access_token(self, token: Optional[str]):
        """Swap the user session token; takes effect on the next request."""
        self.access_token = token

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"apikey": self.api_key},
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token or self.api_key}"}

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
        raw: bool = False,
    ) -> Any:
        client = await self._get_client()
        url = f"{self.base_url}{endpoint}"
        request_headers = self._auth_headers()
        if headers:
            request_headers.update(headers)

        try:
            response = await client.request(
                method, endpoint, params=params, json=json_body, content=content, headers=request_headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_detail = str(e)
            response_data = None
            try:
                response_data = e.response.json()
                if isinstance(response_data, dict):
                    # PostgREST: {"message", "code", "details", "hint"}; storage: {"error", "message"}
                    error_detail = response_data.get("message") or response_data.get("error") or error_detail
            except ValueError:
                pass

            status_code = e.response.status_code
            if status_code == 401:
                raise AuthenticationError(f"Authentication failed: {error_detail}")
            if status_code in REJECTION_STATUS_CODES:
                raise APIRequestError(status_code, error_detail, response_data=response_data)
            raise APIResponseError(status_code, error_detail, response_data=response_data)
        except httpx.RequestError as e:  # ConnectError, TimeoutException, etc.
            raise APIConnectionError(f"Connection error to {url}: {e}")

        if raw:
            return response.content
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError:
            raise APIResponseError(response.status_code, "Failed to decode JSON response",
                                   response_data={"raw_text": response.text})

    # --- Tables ---

    async def select(
        self,
        table: str,
        columns: str = "*",
        eq: Optional[Dict[str, Any]] = None,
        in_: Optional[Dict[str, Iterable[Any]]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params = build_filter_params(eq=eq, in_=in_)
        params["select"] = columns
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        rows = await self._request("GET", f"{REST_PREFIX}/{table}", params=params)
        return rows or []

    async def upsert(self, table: str, rows: Union[Dict[str, Any], List[Dict[str, Any]]], on_conflict: str) -> None:
        """Insert-or-merge keyed on `on_conflict` (comma separated column list)."""
        await self._request(
            "POST", f"{REST_PREFIX}/{table}",
            params={"on_conflict": on_conflict},
            json_body=rows,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def insert(self, table: str, rows: Union[Dict[str, Any], List[Dict[str, Any]]]) -> None:
        await self._request(
            "POST", f"{REST_PREFIX}/{table}",
            json_body=rows,
            headers={"Prefer": "return=minimal"},
        )

    async def update(
        self,
        table: str,
        values: Dict[str, Any],
        eq: Optional[Dict[str, Any]] = None,
        neq: Optional[Dict[str, Any]] = None,
        in_: Optional[Dict[str, Iterable[Any]]] = None,
    ) -> None:
        params = build_filter_params(eq=eq, neq=neq, in_=in_)
        if not params:
            # PostgREST refuses unfiltered updates; fail loudly before hitting the network
            raise ValueError(f"Refusing to update every row of '{table}' without a filter")
        await self._request(
            "PATCH", f"{REST_PREFIX}/{table}",
            params=params,
            json_body=values,
            headers={"Prefer": "return=minimal"},
        )

    async def rpc(self, function: str, params: Dict[str, Any]) -> Any:
        return await self._request("POST", f"{REST_PREFIX}/rpc/{function}", json_body=params)

    # --- Storage ---

    async def upload_object(self, bucket: str, path: str, data: bytes, content_type: str,
                            upsert: bool = True, cache_control: str = "3600") -> str:
        """Uploads bytes to `bucket/path`, overwriting when `upsert` is set. Returns the object path."""
        await self._request(
            "POST", f"{STORAGE_PREFIX}/object/{bucket}/{quote(path)}",
            content=data,
            headers={
                "Content-Type": content_type,
                "cache-control": f"max-age={cache_control}",
                "x-upsert": "true" if upsert else "false",
            },
        )
        return path

    async def download_object(self, bucket: str, path: str) -> bytes:
        return await self._request("GET", f"{STORAGE_PREFIX}/object/{bucket}/{quote(path)}", raw=True)

    # --- Auth ---

    async def get_user(self) -> Optional[Dict[str, Any]]:
        """Returns the user behind the current access token, or None when there is no valid session."""
        if not self.access_token:
            return None
        try:
            return await self._request("GET", f"{AUTH_PREFIX}/user")
        except AuthenticationError:
            return None

#
# End of client.py
########################################################################################################################
