"""FastAPI application exposing the algorithm suite as JSON endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from fib_bench.core import (
    AlgorithmVariant,
    FibonacciError,
    FibonacciOverflowError,
    InvalidParameterError,
    Representation,
    all_variants,
    calculate_with_metadata,
    describe,
    fib_batch,
    hardware_features,
    precision_table,
)

logger = logging.getLogger(__name__)

MAX_RECURSIVE_N = 35


class BatchRequest(BaseModel):
    indices: List[int]
    lane_width: Optional[int] = None


class BatchResponse(BaseModel):
    results: List[Optional[str]]
    errors: Dict[str, str]
    lane_width: int


def create_api_server() -> FastAPI:
    app = FastAPI(title="fib-bench", version="0.1.0")

    @app.exception_handler(FibonacciError)
    async def fibonacci_error_handler(request: Request, exc: FibonacciError) -> JSONResponse:
        logger.info("Rejected %s: %s", request.url.path, exc)
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RecursionError)
    async def recursion_error_handler(request: Request, exc: RecursionError) -> JSONResponse:
        logger.info("Rejected %s: recursion depth exceeded", request.url.path)
        return JSONResponse(
            status_code=400,
            content={
                "detail": "recursion depth exceeded; use an iterative or logarithmic method"
            },
        )

    @app.get("/v1/methods")
    def list_methods() -> List[Dict[str, str]]:
        return [describe(variant) for variant in all_variants()]

    @app.get("/v1/calc")
    def calc(n: int, method: str = "iterative") -> Dict[str, Any]:
        variant = AlgorithmVariant.parse(method)
        if variant is AlgorithmVariant.RECURSIVE and n > MAX_RECURSIVE_N:
            raise InvalidParameterError(
                f"naive recursion is limited to n <= {MAX_RECURSIVE_N} on this endpoint"
            )
        return calculate_with_metadata(variant, n).to_dict()

    @app.post("/v1/batch", response_model=BatchResponse)
    def batch(request: BatchRequest) -> BatchResponse:
        features = hardware_features()
        lane_width = features.resolve_lane_width(request.lane_width)
        results: List[Optional[str]] = []
        errors: Dict[str, str] = {}
        for position, value in enumerate(
            fib_batch(request.indices, lane_width=lane_width, features=features)
        ):
            if isinstance(value, FibonacciOverflowError):
                results.append(None)
                errors[str(position)] = str(value)
            else:
                results.append(str(value))
        logger.info(
            "Batch of %d indices on %d lanes, %d errors",
            len(request.indices),
            lane_width,
            len(errors),
        )
        return BatchResponse(results=results, errors=errors, lane_width=lane_width)

    @app.get("/v1/precision")
    def precision(
        max_n: int = 100, step: int = 1, representation: str = "float64"
    ) -> List[Dict[str, Any]]:
        reports = precision_table(
            max_n, step=step, representation=Representation.parse(representation)
        )
        return [report.to_record() for report in reports]

    @app.get("/v1/features")
    def list_features() -> Dict[str, Any]:
        return hardware_features().to_dict()

    return app


__all__ = ["BatchRequest", "BatchResponse", "create_api_server"]
