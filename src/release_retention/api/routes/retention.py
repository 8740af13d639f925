"""Retention evaluation endpoint.

POST /v1/retention/evaluate: rank releases per project/environment and
return the kept set with its decision log.

The handler is a plain ``def``: evaluation is CPU-bound and synchronous, so
FastAPI runs it in the threadpool.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends

from release_retention.api.dependencies import get_retention_service
from release_retention.api.schemas import (
    EvaluateRetentionRequest,
    EvaluateRetentionResponse,
)
from release_retention.service import RetentionService  # noqa: TCH001 (runtime: Depends())

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["retention"])

RetentionServiceDep = Annotated[RetentionService, Depends(get_retention_service)]


@router.post(
    "/retention/evaluate",
    response_model=EvaluateRetentionResponse,
    response_model_by_alias=True,
)
def evaluate_retention(
    body: EvaluateRetentionRequest,
    service: RetentionServiceDep,
) -> EvaluateRetentionResponse:
    """Evaluate the retention policy for a dataset.

    Validation failures surface as 400 problems through the registered
    exception handlers; nothing is caught here.
    """
    dataset = body.dataset
    logger.info(
        "retention_evaluate_requested",
        releases_to_keep=body.releases_to_keep,
        correlation_id=body.correlation_id,
    )
    result = service.evaluate(
        dataset.domain_projects(),
        dataset.domain_environments(),
        dataset.domain_releases(),
        dataset.domain_deployments(),
        body.releases_to_keep,
        correlation_id=body.correlation_id,
    )
    return EvaluateRetentionResponse.from_result(result, body.correlation_id)
