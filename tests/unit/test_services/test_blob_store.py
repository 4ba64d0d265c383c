"""Tests for the Supabase blob store."""

import re
import pytest
from unittest.mock import MagicMock, patch

from designdesk.services.blob_store import SupabaseBlobStore, build_artifact_path
from designdesk.utils.errors import StoreError


@pytest.mark.unit
def test_build_artifact_path():
    path = build_artifact_path("deliveries", "task-1", "Final Logo (v2).png")

    assert re.fullmatch(r"deliveries/task-1/\d{13}-Final_Logo_v2_.png", path)


@pytest.mark.unit
def test_build_artifact_path_blank_name():
    assert build_artifact_path("tasks", "task-1", "???").endswith("-file")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_returns_public_url():
    mock_client = MagicMock()
    bucket = mock_client.storage.from_.return_value
    bucket.get_public_url.return_value = "https://test.supabase.co/storage/v1/object/public/deliveries/x.png"

    with patch('designdesk.services.blob_store.SupabaseClient') as mock_client_class:
        mock_client_class.return_value.__aenter__.return_value = mock_client
        mock_client_class.return_value.__aexit__.return_value = None

        url = await SupabaseBlobStore("deliveries").upload_artifact(b"png-bytes", "deliveries/t1/x.png", "image/png")

    assert url.endswith("deliveries/x.png")
    mock_client.storage.from_.assert_called_with("deliveries")
    bucket.upload.assert_called_once_with(
        path="deliveries/t1/x.png",
        file=b"png-bytes",
        file_options={"content-type": "image/png"},
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_failure_raises_store_error():
    mock_client = MagicMock()
    mock_client.storage.from_.return_value.upload.side_effect = Exception("bucket not found")

    with patch('designdesk.services.blob_store.SupabaseClient') as mock_client_class:
        mock_client_class.return_value.__aenter__.return_value = mock_client
        mock_client_class.return_value.__aexit__.return_value = None

        with pytest.raises(StoreError) as exc_info:
            await SupabaseBlobStore("deliveries").upload_artifact(b"x", "deliveries/t1/x.png")

    assert exc_info.value.details["bucket"] == "deliveries"
