"""User directory - identity lookups and brand profiles."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from designdesk.models.enums import BrandSize, UserRole
from designdesk.models.user import Brand, User
from designdesk.services.supabase_client import SupabaseClient, to_row
from designdesk.utils.config import StoreConfig
from designdesk.utils.errors import StoreError
from designdesk.utils.ids import generate_id
from designdesk.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)


class UserDirectory(ABC):
    """Read access to users, plus the brand profile a task hangs off."""

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def list_users(self, role: Optional[UserRole] = None) -> list[User]:
        ...

    @abstractmethod
    async def get_brand_for_user(self, user_id: str) -> Optional[Brand]:
        ...

    @abstractmethod
    async def create_brand(self, user_id: str, name: str, size: BrandSize = BrandSize.SMALL) -> Brand:
        ...


class SupabaseUserDirectory(UserDirectory):
    """User directory backed by the Supabase users and brands tables."""

    def __init__(
        self,
        users_table: str = StoreConfig.USERS_TABLE,
        brands_table: str = StoreConfig.BRANDS_TABLE,
    ):
        self.users_table = users_table
        self.brands_table = brands_table

    async def get_user(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        async with SupabaseClient() as client:
            try:
                result = client.table(self.users_table).select("*").eq("id", user_id).execute()
            except Exception as e:
                raise StoreError(f"Failed to get user: {e}", user_id=user_id) from e
        if result.data and len(result.data) > 0:
            return User.model_validate(result.data[0])
        return None

    async def list_users(self, role: Optional[UserRole] = None) -> list[User]:
        async with SupabaseClient() as client:
            try:
                query = client.table(self.users_table).select("*")
                if role:
                    query = query.eq("role", role.value)
                result = query.execute()
            except Exception as e:
                raise StoreError(f"Failed to list users: {e}") from e
        return [User.model_validate(row) for row in (result.data or [])]

    async def get_brand_for_user(self, user_id: str) -> Optional[Brand]:
        async with SupabaseClient() as client:
            try:
                result = (
                    client.table(self.brands_table)
                    .select("*")
                    .eq("user_id", user_id)
                    .limit(1)
                    .execute()
                )
            except Exception as e:
                raise StoreError(f"Failed to get brand: {e}", user_id=user_id) from e
        if result.data and len(result.data) > 0:
            return Brand.model_validate(result.data[0])
        return None

    async def create_brand(self, user_id: str, name: str, size: BrandSize = BrandSize.SMALL) -> Brand:
        now = datetime.now(timezone.utc)
        brand = Brand(
            id=generate_id(),
            name=name,
            size=size,
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )
        async with SupabaseClient() as client:
            try:
                result = client.table(self.brands_table).insert(to_row(brand.model_dump())).execute()
            except Exception as e:
                raise StoreError(f"Failed to create brand: {e}", user_id=user_id) from e
        if not result.data:
            raise StoreError("Failed to create brand: no data returned", user_id=user_id)

        logger.info(
            "Created brand profile",
            brand_id=brand.id,
            user_id=mask_user_id(user_id)
        )
        return Brand.model_validate(result.data[0])
