# test_photo_cache_db.py
#
# Imports
import sqlite3
#
# Third-Party Imports
import pytest
#
# Local Imports
from continuity_sync.DB.Photo_Cache_DB import PhotoCacheDB, PhotoCacheDBError
#
########################################################################################################################
#
# Fixtures:

@pytest.fixture
def file_db_path(tmp_path):
    return tmp_path / "nested" / "photo_cache.db"


# --- Tests ---

class TestPhotoCacheDB:
    def test_save_and_read_back(self, photo_cache):
        photo_cache.save_binary("ph-1", b"\xff\xd8jpeg", "image/jpeg")
        assert photo_cache.get_binary("ph-1") == b"\xff\xd8jpeg"
        assert photo_cache.get_content_type("ph-1") == "image/jpeg"

    def test_missing_asset_is_none(self, photo_cache):
        assert photo_cache.get_binary("nope") is None
        assert photo_cache.get_content_type("nope") is None

    def test_save_overwrites_existing_asset(self, photo_cache):
        photo_cache.save_binary("ph-1", b"old", "image/jpeg")
        photo_cache.save_binary("ph-1", b"newer", "image/png")
        assert photo_cache.get_binary("ph-1") == b"newer"
        assets = photo_cache.list_assets()
        assert len(assets) == 1
        assert assets[0]["byte_size"] == 5
        assert assets[0]["content_type"] == "image/png"

    def test_delete(self, photo_cache):
        photo_cache.save_binary("ph-1", b"x")
        assert photo_cache.delete_binary("ph-1") is True
        assert photo_cache.delete_binary("ph-1") is False
        assert photo_cache.get_binary("ph-1") is None

    def test_empty_asset_id_is_rejected(self, photo_cache):
        with pytest.raises(ValueError):
            photo_cache.save_binary("", b"x")

    def test_transaction_rolls_back_on_error(self, photo_cache):
        with pytest.raises(RuntimeError):
            with photo_cache.transaction() as conn:
                conn.execute(
                    "INSERT INTO asset_blobs (asset_id, data, byte_size, stored_at) VALUES ('a', x'00', 1, 'now')")
                raise RuntimeError("abort")
        assert photo_cache.get_binary("a") is None

    def test_file_database_survives_reopen(self, file_db_path):
        db = PhotoCacheDB(file_db_path)
        db.save_binary("doc-1", b"%PDF", "application/pdf")
        db.close_connection()

        reopened = PhotoCacheDB(file_db_path)
        try:
            assert reopened.get_binary("doc-1") == b"%PDF"
        finally:
            reopened.close_connection()

    def test_unknown_schema_version_is_refused(self, file_db_path):
        file_db_path.parent.mkdir(parents=True)
        conn = sqlite3.connect(file_db_path)
        conn.execute("PRAGMA user_version = 7")
        conn.close()
        with pytest.raises(PhotoCacheDBError):
            PhotoCacheDB(file_db_path)

#
# End of test_photo_cache_db.py
########################################################################################################################
