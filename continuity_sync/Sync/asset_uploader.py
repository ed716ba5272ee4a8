# continuity_sync/Sync/asset_uploader.py
# Description: Uploads photos and documents to object storage under deterministic paths.
#
"""
asset_uploader.py
-----------------

`AssetUploader.upload_asset(parent_path, identifier, source)` returns the storage path of the
asset, uploading it first if needed, or None when it could not be uploaded.

- A source that already carries a storage path, or a destination this uploader has already
  confirmed, short-circuits without touching the network.
- Bytes come from the local binary cache first, then from the source's inline data URI.
- The destination is "{parent_path}/{identifier}.{ext}", so retrying the same upload always
  targets the same object, and the upload overwrites whatever is there.

Failures are logged and reported as None; they never raise, so one broken photo does not stop
the rest of a batch. Local state is never touched here; callers record the returned path.
"""
# Imports
from dataclasses import dataclass
from typing import Optional, Dict, Tuple, Protocol
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from continuity_sync.Constants import (
    DEFAULT_PHOTOS_BUCKET, DEFAULT_DOCUMENTS_BUCKET, CONTENT_TYPE_JPEG, CONTENT_TYPE_PDF,
)
from continuity_sync.Metrics.metrics_logger import log_counter, log_histogram
from continuity_sync.remote_api.client import RemoteStoreClient
from continuity_sync.remote_api.exceptions import RemoteStoreError
from continuity_sync.remote_api.utils import decode_data_uri, is_data_uri, extension_for_content_type
#
#######################################################################################################################
#
# Functions:

class BinaryCache(Protocol):
    def get_binary(self, asset_id: str) -> Optional[bytes]: ...


@dataclass
class AssetSource:
    """Where the bytes of an asset can be found, and whether it is already in storage."""
    storage_path: Optional[str] = None
    inline_data: Optional[str] = None  # base64 data URI
    content_type: Optional[str] = None  # used for cached bytes, which carry no type of their own
    bucket: Optional[str] = None  # overrides the uploader's photos bucket


class AssetUploader:
    def __init__(
        self,
        client: RemoteStoreClient,
        binary_cache: Optional[BinaryCache] = None,
        photos_bucket: str = DEFAULT_PHOTOS_BUCKET,
        documents_bucket: str = DEFAULT_DOCUMENTS_BUCKET,
    ):
        self.client = client
        self.binary_cache = binary_cache
        self.photos_bucket = photos_bucket
        self.documents_bucket = documents_bucket
        # (bucket, parent_path, identifier) -> storage path confirmed by a successful upload
        self._confirmed: Dict[Tuple[str, str, str], str] = {}

    @staticmethod
    def build_storage_path(parent_path: str, identifier: str, extension: str) -> str:
        return f"{parent_path.strip('/')}/{identifier}.{extension}"

    def confirmed_path(self, parent_path: str, identifier: str, bucket: Optional[str] = None) -> Optional[str]:
        return self._confirmed.get((bucket or self.photos_bucket, parent_path, identifier))

    def _resolve_bytes(self, identifier: str, source: AssetSource) -> Optional[Tuple[bytes, str]]:
        if self.binary_cache is not None:
            try:
                cached = self.binary_cache.get_binary(identifier)
            except Exception as e:
                logger.warning(f"[AssetUpload] Local cache lookup failed for {identifier}: {e}")
                cached = None
            if cached:
                return cached, source.content_type or CONTENT_TYPE_JPEG

        if is_data_uri(source.inline_data):
            try:
                data, content_type = decode_data_uri(source.inline_data)
            except ValueError as e:
                logger.warning(f"[AssetUpload] Inline data for {identifier} could not be decoded: {e}")
                return None
            return data, content_type
        return None

    async def upload_asset(self, parent_path: str, identifier: str, source: AssetSource) -> Optional[str]:
        bucket = source.bucket or self.photos_bucket
        if source.storage_path:
            return source.storage_path
        confirmed = self._confirmed.get((bucket, parent_path, identifier))
        if confirmed:
            logger.debug(f"[AssetUpload] {identifier} already uploaded to {confirmed}")
            return confirmed

        resolved = self._resolve_bytes(identifier, source)
        if resolved is None:
            logger.warning(f"[AssetUpload] No binary content for {identifier} (cache miss, no inline data); skipping")
            log_counter("sync_asset_unresolved")
            return None
        data, content_type = resolved

        default_ext = "pdf" if bucket == self.documents_bucket else "jpg"
        storage_path = self.build_storage_path(
            parent_path, identifier, extension_for_content_type(content_type, default=default_ext)
        )
        try:
            await self.client.upload_object(bucket, storage_path, data, content_type, upsert=True)
        except RemoteStoreError as e:
            logger.error(f"[AssetUpload] Upload of {identifier} to {bucket}/{storage_path} failed: {e}")
            log_counter("sync_asset_upload_failed", labels={"bucket": bucket})
            return None

        self._confirmed[(bucket, parent_path, identifier)] = storage_path
        log_counter("sync_asset_uploaded", labels={"bucket": bucket})
        log_histogram("sync_asset_upload_bytes", len(data), labels={"bucket": bucket})
        logger.info(f"[AssetUpload] Uploaded {identifier} to {bucket}/{storage_path} ({len(data)} bytes)")
        return storage_path

    async def upload_document(self, parent_path: str, identifier: str, inline_data: Optional[str],
                              storage_path: Optional[str] = None) -> Optional[str]:
        """Shorthand for a PDF (or other document) held as a data URI, uploaded to the documents bucket."""
        return await self.upload_asset(
            parent_path, identifier,
            AssetSource(storage_path=storage_path, inline_data=inline_data,
                        content_type=CONTENT_TYPE_PDF, bucket=self.documents_bucket),
        )

#
# End of asset_uploader.py
#######################################################################################################################
