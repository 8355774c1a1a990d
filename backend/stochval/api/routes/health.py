from fastapi import APIRouter

from stochval.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check():
    return {
        "status": "ok",
        "engine": {
            "default_n_scenarios": settings.DEFAULT_N_SCENARIOS,
            "max_scenarios": settings.MAX_SCENARIOS,
            "workers": settings.WORKERS,
            "spread_policy": settings.SPREAD_POLICY,
        },
    }
