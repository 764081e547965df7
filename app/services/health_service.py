from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from app.core.config import settings
from app.database.connection import check_health


@dataclass
class CheckResult:
    reachable: bool
    error: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None


class HealthService:
    def __init__(
        self,
        database_check: Callable[[], Awaitable[Dict[str, Any]]] = check_health,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.fathom_base_url = settings.FATHOM_BASE_URL.rstrip("/")
        self.database_check = database_check
        self.transport = transport

        # Keep timeouts tight for health checks
        self.timeout = httpx.Timeout(connect=2.0, read=3.0, write=3.0, pool=3.0)

    async def check_database(self) -> CheckResult:
        result = await self.database_check()
        if result.get("status") == "healthy":
            return CheckResult(reachable=True, meta={"database": result.get("database")})
        return CheckResult(
            reachable=False,
            error=result.get("error"),
            meta={"missing_tables": result["missing_tables"]} if result.get("missing_tables") else None,
        )

    async def check_fathom(self) -> CheckResult:
        """
        Checks whether the Fathom API accepts the configured key.
        """
        if settings.FATHOM_API_KEY == "__MISSING__":
            return CheckResult(reachable=False, error="FATHOM_API_KEY not configured")

        url = f"{self.fathom_base_url}/meetings"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.get(
                    url,
                    params={"include_transcript": "false"},
                    headers={"X-Api-Key": settings.FATHOM_API_KEY},
                )
                r.raise_for_status()
                return CheckResult(reachable=True)
        except Exception as e:
            return CheckResult(reachable=False, error=str(e))

    async def full_health(self) -> Dict[str, Any]:
        database = await self.check_database()
        fathom = await self.check_fathom()

        # Fathom being down degrades sync only; reads keep working
        return {
            "status": "ok" if database.reachable and fathom.reachable else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "app": {
                "name": settings.APP_NAME,
                "env": settings.ENV,
                "debug": settings.DEBUG,
            },
            "database": {
                "reachable": database.reachable,
                "error": database.error,
                "meta": database.meta,
            },
            "fathom": {
                "base_url": settings.FATHOM_BASE_URL,
                "reachable": fathom.reachable,
                "error": fathom.error,
            },
        }
