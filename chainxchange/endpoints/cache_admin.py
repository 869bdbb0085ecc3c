import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException

from chainxchange.core.cache_config import invalidation_keys
from chainxchange.schemas.response import APIResponse
from chainxchange.services.market_data import MarketDataService
from chainxchange.utils import deps

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/cache/health")
async def cache_health_check(market_data: MarketDataService = Depends(deps.get_market_data)) -> APIResponse:
    """Round-trips a throwaway key through the cache store"""
    check_key = f"health-check-{uuid.uuid4().hex}"
    try:
        await market_data.cache.setex(check_key, 10, "ok")
        healthy = await market_data.cache.get(check_key) == "ok"
        await market_data.cache.delete(check_key)
    except Exception as e:
        logger.error(f"Cache health check failed: {e}")
        raise HTTPException(status_code=503, detail=f"Cache health check failed: {str(e)}")

    status = "healthy" if healthy else "unhealthy"
    return APIResponse(message=f"Cache is {status}", data={"healthy": healthy})

@router.get("/cache/stats")
async def get_cache_stats(market_data: MarketDataService = Depends(deps.get_market_data)) -> APIResponse:
    """Store statistics plus read-through and queue counters"""
    try:
        store_stats = await market_data.cache.stats()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get cache stats: {str(e)}")
    return APIResponse(
        message="Cache statistics retrieved",
        data={"store": store_stats, "market_data": market_data.stats()}
    )

@router.post("/cache/invalidate/portfolio/{user_id}")
async def invalidate_portfolio_cache(
    user_id: int,
    market_data: MarketDataService = Depends(deps.get_market_data),
) -> APIResponse:
    deleted = await market_data.invalidate(*invalidation_keys("trade_execution", user_id))
    return APIResponse(message=f"Portfolio cache invalidated for user {user_id}", data={"deleted": deleted})

@router.post("/cache/clear")
async def clear_cache(market_data: MarketDataService = Depends(deps.get_market_data)) -> APIResponse:
    try:
        await market_data.cache.clear()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to clear cache: {str(e)}")
    return APIResponse(message="All cache entries cleared")
