"""Unit tests for MongoDB document database provider."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from video_orchestrator.commons.infrastructure.documentdb import (
    DocumentConflictError,
    DocumentDBUnavailableError,
)


class TestMongoDBDocumentDB:
    """Tests for MongoDBDocumentDB provider.

    These tests verify the ID mapping between the domain model 'id' and
    MongoDB's '_id' field, and the translation of driver errors.
    """

    @pytest.fixture
    def mock_motor_client(self):
        """Create a mock Motor client."""
        with patch(
            "video_orchestrator.commons.infrastructure.documentdb"
            ".mongodb_provider.AsyncIOMotorClient"
        ) as mock_client_class:
            mock_client = MagicMock()
            mock_db = MagicMock()
            mock_collection = MagicMock()

            mock_client.__getitem__ = MagicMock(return_value=mock_db)
            mock_db.__getitem__ = MagicMock(return_value=mock_collection)

            mock_client_class.return_value = mock_client

            yield {
                "client_class": mock_client_class,
                "client": mock_client,
                "db": mock_db,
                "collection": mock_collection,
            }

    @pytest.fixture
    def mongodb_provider(self, mock_motor_client):
        """Create MongoDB provider with mocked client."""
        from video_orchestrator.commons.infrastructure.documentdb import (
            MongoDBDocumentDB,
        )

        return MongoDBDocumentDB(
            connection_string="mongodb://localhost:27017",
            database_name="test_db",
            server_selection_timeout_ms=1500,
        )

    def test_client_options(self, mongodb_provider, mock_motor_client):
        mock_motor_client["client_class"].assert_called_once_with(
            "mongodb://localhost:27017",
            serverSelectionTimeoutMS=1500,
            tz_aware=True,
        )

    # =========================================================================
    # Insert Tests
    # =========================================================================

    async def test_insert_uses_id_as_mongodb_id(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.insert_one = AsyncMock(
            return_value=MagicMock(inserted_id="video-123")
        )
        document = {"id": "video-123", "title": "Clip", "status": "pending"}

        result = await mongodb_provider.insert("videos", document)

        call_args = collection.insert_one.call_args[0][0]
        assert call_args["_id"] == "video-123"
        assert "id" not in call_args
        assert result == "video-123"
        # Original document is untouched
        assert document["id"] == "video-123"
        assert "_id" not in document

    async def test_duplicate_key_becomes_conflict(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.insert_one = AsyncMock(
            side_effect=DuplicateKeyError(
                "E11000 duplicate key",
                code=11000,
                details={"keyValue": {"external_asset_id": "asset-1"}},
            )
        )

        with pytest.raises(DocumentConflictError) as exc_info:
            await mongodb_provider.insert("videos", {"id": "v-1"})

        assert exc_info.value.collection == "videos"
        assert "asset-1" in exc_info.value.detail

    async def test_unreachable_server_becomes_unavailable(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.insert_one = AsyncMock(
            side_effect=ServerSelectionTimeoutError("no servers available")
        )

        with pytest.raises(DocumentDBUnavailableError) as exc_info:
            await mongodb_provider.insert("videos", {"id": "v-1"})

        assert exc_info.value.operation == "insert on videos"

    # =========================================================================
    # Find Tests
    # =========================================================================

    async def test_find_by_id(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.find_one = AsyncMock(
            return_value={"_id": "video-123", "title": "Clip"}
        )

        result = await mongodb_provider.find_by_id("videos", "video-123")

        collection.find_one.assert_called_with({"_id": "video-123"})
        assert result == {"id": "video-123", "title": "Clip"}

    async def test_find_by_id_not_found(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.find_one = AsyncMock(return_value=None)

        assert await mongodb_provider.find_by_id("videos", "missing") is None

    async def test_find_maps_ids_and_sort_keys(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]

        async def mock_cursor():
            yield {"_id": "v-1", "thumbnail_tier": "placeholder"}
            yield {"_id": "v-2", "thumbnail_tier": None}

        cursor_mock = MagicMock()
        cursor_mock.sort = MagicMock(return_value=cursor_mock)
        cursor_mock.skip = MagicMock(return_value=cursor_mock)
        cursor_mock.limit = MagicMock(return_value=cursor_mock)
        cursor_mock.__aiter__ = lambda self: mock_cursor()
        collection.find = MagicMock(return_value=cursor_mock)

        results = await mongodb_provider.find(
            "videos",
            {"id": {"$gt": "v-0"}},
            limit=2,
            sort=[("id", 1)],
        )

        collection.find.assert_called_once_with({"_id": {"$gt": "v-0"}})
        cursor_mock.sort.assert_called_once_with([("_id", 1)])
        cursor_mock.limit.assert_called_once_with(2)
        assert [doc["id"] for doc in results] == ["v-1", "v-2"]
        assert all("_id" not in doc for doc in results)

    async def test_find_one_maps_filters(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.find_one = AsyncMock(
            return_value={"_id": "v-1", "external_asset_id": "asset-1"}
        )

        result = await mongodb_provider.find_one(
            "videos", {"external_asset_id": "asset-1"}
        )

        collection.find_one.assert_called_with({"external_asset_id": "asset-1"})
        assert result is not None
        assert result["id"] == "v-1"

    # =========================================================================
    # Update Tests
    # =========================================================================

    async def test_update_one_with_version_guard(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1))

        result = await mongodb_provider.update_one(
            "videos",
            {"id": "v-1", "version": 3},
            {"id": "v-1", "status": "ready", "version": 4},
        )

        filters, update = collection.update_one.call_args[0]
        assert filters == {"_id": "v-1", "version": 3}
        assert update == {"$set": {"status": "ready", "version": 4}}
        assert result is True

    async def test_update_not_matched(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.update_one = AsyncMock(return_value=MagicMock(matched_count=0))

        result = await mongodb_provider.update("videos", "v-1", {"status": "ready"})

        assert collection.update_one.call_args[0][0] == {"_id": "v-1"}
        assert result is False

    # =========================================================================
    # Count / Index Tests
    # =========================================================================

    async def test_count_with_and_without_filters(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.count_documents = AsyncMock(return_value=3)
        collection.estimated_document_count = AsyncMock(return_value=10)

        assert await mongodb_provider.count("videos", {"status": "ready"}) == 3
        assert await mongodb_provider.count("videos") == 10

    async def test_create_partial_ttl_index(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.create_index = AsyncMock(return_value="external_asset_id")

        name = await mongodb_provider.create_index(
            "videos",
            [("external_asset_id", 1)],
            unique=True,
            name="external_asset_id",
            partial_filter={"external_asset_id": {"$type": "string"}},
            expire_after_seconds=60,
        )

        collection.create_index.assert_called_once_with(
            [("external_asset_id", 1)],
            unique=True,
            name="external_asset_id",
            partialFilterExpression={"external_asset_id": {"$type": "string"}},
            expireAfterSeconds=60,
        )
        assert name == "external_asset_id"

    # =========================================================================
    # Health Check Tests
    # =========================================================================

    async def test_health_check_success(self, mongodb_provider, mock_motor_client):
        mock_motor_client["client"].admin.command = AsyncMock(return_value={"ok": 1})

        result = await mongodb_provider.health_check()

        assert result.healthy is True
        assert result.message == "MongoDB is healthy"
        assert result.details["database"] == "test_db"

    async def test_health_check_failure(self, mongodb_provider, mock_motor_client):
        mock_motor_client["client"].admin.command = AsyncMock(
            side_effect=Exception("Connection refused")
        )

        result = await mongodb_provider.health_check()

        assert result.healthy is False
        assert "Connection refused" in result.message
