"""Monte Carlo DCF valuation routes."""
import logging
import threading

from fastapi import APIRouter, HTTPException

from stochval.config import settings
from stochval.exceptions import SimulationCancelled, SimulationValidationError
from stochval.models.simulation import SimulationRequest
from stochval.models.valuation import BaseCaseValuation, SimulationResponse
from stochval.services.simulation_service import run_base_case, run_simulation

logger = logging.getLogger(__name__)

router = APIRouter(tags=["valuation"])


@router.post("/valuation/simulate", response_model=SimulationResponse)
def simulate(request: SimulationRequest):
    """Run a Monte Carlo DCF and return percentile statistics and a histogram.

    Missing or non-positive revenue/share count and degenerate assumption
    sets are 400s. A run that exceeds SIMULATION_TIMEOUT_SECONDS is
    cancelled between trials and reported as a 503. Anything unexpected is
    a generic 500.
    """
    cancel_event = threading.Event()
    timer = None
    if settings.SIMULATION_TIMEOUT_SECONDS:
        timer = threading.Timer(settings.SIMULATION_TIMEOUT_SECONDS, cancel_event.set)
        timer.daemon = True
        timer.start()
    try:
        result = run_simulation(request, cancel_event=cancel_event)
    except SimulationValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SimulationCancelled:
        raise HTTPException(status_code=503, detail="Simulation cancelled")
    except Exception:
        logger.exception("Simulation failed")
        raise HTTPException(status_code=500, detail="Simulation failed")
    finally:
        if timer is not None:
            timer.cancel()
    return SimulationResponse(result=result)


@router.post("/valuation/base-case", response_model=BaseCaseValuation)
def base_case_valuation(request: SimulationRequest):
    """Deterministic DCF with every assumption at its mean."""
    try:
        return run_base_case(request)
    except SimulationValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
