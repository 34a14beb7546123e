# app/api/health.py

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "ok"}


@router.get("/health/detailed")
async def detailed_health_check(request: Request):
    """Detailed health check including engine, Redis and scheduler status"""
    services = request.app.state.services

    health = {
        "status": "ok",
        "services": {}
    }

    # Check transition engine
    try:
        await services.engine.ping()
        health["services"]["engine"] = "connected"
    except Exception as e:
        health["services"]["engine"] = f"error: {str(e)}"
        health["status"] = "degraded"

    # Check Redis (only when used for process locks)
    if services.redis is not None:
        try:
            await services.redis.ping()
            health["services"]["redis"] = "connected"
        except Exception as e:
            health["services"]["redis"] = f"error: {str(e)}"
            health["status"] = "degraded"

    if services.scheduler is not None:
        scheduler = services.scheduler
        info = scheduler.get_info()
        next_run = scheduler.next_run_time()
        last = scheduler.last_result
        health["services"]["scheduler"] = {
            "status": info.status.value,
            "started_at": info.started_at.isoformat() if info.started_at else None,
            "error": info.error_message,
            "last_tick_at": last.started_at.isoformat() if last else None,
            "next_run_time": next_run.isoformat() if next_run else None,
            "ticks": scheduler.tick_count,
            "failures": scheduler.failure_count,
        }

    return health
