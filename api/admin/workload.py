"""Designer workload and client overview endpoint."""

import asyncio
import json
import logging

from designdesk.services.task_store import SupabaseTaskStore
from designdesk.services.user_directory import SupabaseUserDirectory
from designdesk.services.workload import WorkloadService
from designdesk.utils.errors import DesignDeskError
from designdesk.utils.logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


def handler(request, service: WorkloadService = None):
    """Return designer workloads and client overviews computed from current tasks."""
    try:
        service = service or WorkloadService(SupabaseTaskStore(), SupabaseUserDirectory())
        result = asyncio.run(service.overview())

        return {
            "statusCode": 200,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps({
                "designers": [w.model_dump(mode="json") for w in result["designers"]],
                "clients": [o.model_dump(mode="json") for o in result["clients"]],
            })
        }

    except DesignDeskError as e:
        logger.error(f"Error computing workload: {e}")
        return {
            "statusCode": 502,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(e.to_dict())
        }
