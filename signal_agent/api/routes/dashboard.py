"""
Read-only routes feeding the dashboard.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException

from signal_agent.api.dependencies import get_storage
from signal_agent.data.storage import JsonStorage
from signal_agent.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/data", response_model=Dict[str, Any])
async def dashboard_data(storage: JsonStorage = Depends(get_storage)):
    """
    Prices, signals, earnings and runs in one payload.
    """
    try:
        return storage.dashboard_snapshot()
    except OSError as e:
        logger.error("Error reading dashboard data", error=str(e))
        raise HTTPException(status_code=500, detail="Error reading dashboard data")


@router.get("/prices", response_model=List[Dict[str, Any]])
async def dashboard_prices(storage: JsonStorage = Depends(get_storage)):
    return storage.read_price_history()


@router.get("/signals", response_model=List[Dict[str, Any]])
async def dashboard_signals(storage: JsonStorage = Depends(get_storage)):
    return storage.read_signal_history()


@router.get("/earnings", response_model=Dict[str, Any])
async def dashboard_earnings(storage: JsonStorage = Depends(get_storage)):
    return storage.read_earnings().to_dict()


@router.get("/runs", response_model=List[Dict[str, Any]])
async def dashboard_runs(storage: JsonStorage = Depends(get_storage)):
    return [run.to_dict() for run in storage.read_agent_runs()]
