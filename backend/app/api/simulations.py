"""
Simulation endpoint.

Accepts any of the historical client payload shapes, normalizes it and
runs it through the simulation engine. Failures are reported as
``{success: false, error, message}`` with a status code per failure
category: 400 for invalid payloads, 502 when the provider output cannot
be turned into results, 500 for anything else.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from ..core.errors import ParseError, PayloadValidationError, ProviderError
from ..core.logging import set_simulation_id
from ..models.schemas import ErrorResponse
from ..simulation.assembler import new_simulation_id, response_body
from ..simulation.engine import SimulationEngine
from ..simulation.payload import normalize_payload


router = APIRouter(tags=["simulations"])
logger = logging.getLogger("simulations_api")


@lru_cache(maxsize=1)
def get_engine() -> SimulationEngine:
    return SimulationEngine()


def _error(code: int, error: str, message: Any = None) -> JSONResponse:
    body = ErrorResponse(error=error, message=str(message) if message is not None else None)
    return JSONResponse(status_code=code, content=body.model_dump(exclude_none=True))


async def _read_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}


@router.post("/simulations/run")
@router.post("/api/simulations/run")
async def run_simulation(request: Request, engine: SimulationEngine = Depends(get_engine)) -> JSONResponse:
    """Run one survey or interview simulation and return its results."""
    simulation_id = new_simulation_id()
    set_simulation_id(simulation_id)
    body = await _read_body(request)

    try:
        sim_request = normalize_payload(body)
    except PayloadValidationError as exc:
        logger.info("Rejected payload: %s", exc)
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    try:
        response = await engine.run(sim_request, simulation_id)
    except ParseError as exc:
        logger.error("Provider output unusable: %s", exc)
        return _error(status.HTTP_502_BAD_GATEWAY, "Respuesta inválida del simulador.", exc)
    except ProviderError as exc:
        logger.error("Provider failure (%s): %s", exc.reason.value, exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error interno al simular.", exc)
    except Exception as exc:
        logger.exception("Unexpected error in /simulations/run")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error interno al simular.", exc)
    finally:
        set_simulation_id(None)

    return JSONResponse(content=response_body(response))
