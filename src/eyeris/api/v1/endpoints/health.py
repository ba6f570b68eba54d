from fastapi import APIRouter, Depends

from eyeris.api.v1.schemas.schemas import ApiResponse, HealthData
from eyeris.core.dependencies import get_token_stats
from eyeris.domain.token_stats import TokenStats

router = APIRouter()


@router.get("", response_model=ApiResponse[HealthData])
def health_check(token_stats: TokenStats = Depends(get_token_stats)):
    """
    Checks the health of the application and reports cumulative token usage.
    """
    return ApiResponse[HealthData](
        success=True,
        message="Service is healthy",
        data=HealthData(status="ok", token_usage=token_stats.snapshot()),
    )
