"""Tests for the Supabase user directory."""

import pytest
from unittest.mock import MagicMock, patch

from designdesk.models.enums import BrandSize, UserRole
from designdesk.services.user_directory import SupabaseUserDirectory
from designdesk.utils.errors import StoreError


@pytest.fixture
def patched(supabase_query):
    mock_client = MagicMock()
    mock_client.table.return_value = supabase_query
    with patch('designdesk.services.user_directory.SupabaseClient') as mock_client_class:
        mock_client_class.return_value.__aenter__.return_value = mock_client
        mock_client_class.return_value.__aexit__.return_value = None
        yield mock_client, supabase_query


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_user(patched):
    _, query = patched
    query.execute.return_value = MagicMock(data=[{
        "id": "u1",
        "email": "jo@example.com",
        "name": "Jo",
        "role": "DESIGNER",
    }])

    user = await SupabaseUserDirectory().get_user("u1")

    assert user.role == UserRole.DESIGNER
    query.eq.assert_called_with("id", "u1")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_user_blank_id_skips_lookup(patched):
    mock_client, _ = patched

    assert await SupabaseUserDirectory().get_user("") is None
    mock_client.table.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_users_by_role(patched):
    _, query = patched
    query.execute.return_value = MagicMock(data=[
        {"id": "u1", "email": "a@example.com", "name": "A", "role": "DESIGNER"},
    ])

    users = await SupabaseUserDirectory().list_users(UserRole.DESIGNER)

    assert len(users) == 1
    query.eq.assert_called_with("role", "DESIGNER")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_brand(patched):
    mock_client, query = patched
    query.execute.return_value = MagicMock(data=[{
        "id": "b1",
        "name": "Jo's Brand",
        "size": "STARTUP",
        "user_id": "u1",
    }])

    brand = await SupabaseUserDirectory().create_brand("u1", "Jo's Brand", BrandSize.STARTUP)

    assert brand.size == BrandSize.STARTUP
    mock_client.table.assert_called_with("brands")
    inserted = query.insert.call_args[0][0]
    assert inserted["user_id"] == "u1"
    assert inserted["size"] == "STARTUP"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_lookup_failure_raises_store_error(patched):
    _, query = patched
    query.execute.side_effect = Exception("timeout")

    with pytest.raises(StoreError):
        await SupabaseUserDirectory().get_brand_for_user("u1")
