"""Client for the privileged host engine (out-of-process command RPC)."""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class HostEngine(ABC):
    """
    A privileged out-of-process engine addressed by command name.

    Commands: execute_python_code, execute_sql, execute_rust, compile_rust,
    execute_r, run_live_preview. Each takes a JSON payload and answers with
    {success, output|rows|error} (run_live_preview answers with a string).
    """

    @property
    def available(self) -> bool:
        return True

    @abstractmethod
    async def invoke(self, command: str, payload: Dict[str, Any]) -> Any:
        ...

    async def aclose(self) -> None:
        return None


class HttpHostEngine(HostEngine):
    """Host engine reached over HTTP: POST {base_url}/invoke/{command}."""

    def __init__(self, base_url: Optional[str], client: Optional[httpx.AsyncClient] = None):
        self.base_url = (base_url or "").rstrip("/")
        self._client = client
        self._owns_client = client is None

    @property
    def available(self) -> bool:
        return bool(self.base_url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            # Deadlines are enforced by the caller with asyncio.wait_for
            self._client = httpx.AsyncClient(timeout=None)
        return self._client

    async def invoke(self, command: str, payload: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/invoke/{command}"
        logger.debug("Invoking host command %s", command)
        response = await self._get_client().post(url, json=payload)
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None


def host_engine_from_settings(settings) -> Optional[HostEngine]:
    """The configured host engine, or None when the runtime has no host."""
    if not settings.HOST_ENGINE_URL:
        return None
    logger.info("Host engine configured at %s", settings.HOST_ENGINE_URL)
    return HttpHostEngine(settings.HOST_ENGINE_URL)
