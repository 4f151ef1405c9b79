"""
Heartbeat ping to an external uptime monitor.
"""

import asyncio

import requests

from webtracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

HEARTBEAT_INTERVAL_SECONDS = 600
HEARTBEAT_TIMEOUT_SECONDS = 5


class HeartbeatJob:
    def __init__(self, url: str, timeout: float = HEARTBEAT_TIMEOUT_SECONDS):
        self.url = url
        self.timeout = timeout

    def _ping(self) -> int:
        response = requests.get(self.url, timeout=self.timeout)
        return response.status_code

    async def run_once(self) -> dict:
        if not self.url:
            return {"skipped": True, "reason": "not_configured"}

        try:
            status_code = await asyncio.to_thread(self._ping)
        except requests.RequestException as e:
            logger.warning("Heartbeat ping failed", url=self.url, error=str(e))
            return {"ok": False, "error": str(e)}

        if status_code >= 400:
            logger.warning("Heartbeat ping rejected", url=self.url, status_code=status_code)
            return {"ok": False, "status_code": status_code}
        return {"ok": True, "status_code": status_code}
