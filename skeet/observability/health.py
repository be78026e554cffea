"""Aggregated health check across all active connectors."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from skeet.registry import ServiceRegistry


async def aggregate_health(registry: ServiceRegistry) -> dict:
    results = await registry.health()
    all_healthy = all(h.get("status") in ("healthy", "disabled") for h in results.values())
    return {
        "status": "healthy" if all_healthy else "degraded",
        "registry": registry.state.value,
        "active_services": registry.get_active_services(),
        "connectors": results,
    }
