"""Health check endpoint."""

from http.server import BaseHTTPRequestHandler
import json

from designdesk.utils.config import StoreConfig


def health_payload() -> dict:
    """Liveness plus whether the task store credentials are present."""
    return {
        "status": "ok",
        "service": "designdesk-core",
        "store_configured": bool(StoreConfig.SUPABASE_URL and StoreConfig.SUPABASE_SERVICE_ROLE_KEY),
    }


class handler(BaseHTTPRequestHandler):
    """Health check handler for Vercel serverless function."""

    def do_GET(self):
        body = json.dumps(health_payload()).encode('utf-8')
        self.send_response(200)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    # Load balancers probe with either verb
    do_POST = do_GET
