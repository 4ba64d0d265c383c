"""Store configuration with environment variable support."""

import os


class StoreConfig:
    """Supabase table and bucket names."""

    SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")

    TASKS_TABLE = os.environ.get("TASKS_TABLE", "tasks")
    USERS_TABLE = os.environ.get("USERS_TABLE", "users")
    BRANDS_TABLE = os.environ.get("BRANDS_TABLE", "brands")

    # Storage buckets
    DELIVERY_BUCKET = os.environ.get("DELIVERY_BUCKET", "deliveries")
    REFERENCE_BUCKET = os.environ.get("REFERENCE_BUCKET", "task-files")
