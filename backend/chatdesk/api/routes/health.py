"""Endpoint de salud mínimo para validaciones rápidas."""
from fastapi import APIRouter, Depends

from chatdesk.api.deps import get_services
from chatdesk.services.container import Services

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", summary="Estado del servicio")
def healthcheck(services: Services = Depends(get_services)) -> dict[str, str | bool]:
    """Indica que la API está viva y si el ciclo en segundo plano corre."""
    return {"status": "ok", "scheduler_running": services.scheduler.running}
