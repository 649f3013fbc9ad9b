from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from neto_history.api.dependencies import get_health_checker
from neto_history.platform.health import HealthChecker

router = APIRouter()


@router.get("/health")
async def health(checker: HealthChecker = Depends(get_health_checker)):
    result = await checker.get_health_status()
    status_code = 200 if result["status"] == "ok" else 503
    return JSONResponse(content=result, status_code=status_code)
