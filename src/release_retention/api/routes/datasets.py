"""Dataset validation endpoint.

POST /v1/datasets/validate: report every structural and referential
problem in a dataset without evaluating retention.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends

from release_retention.api.dataset_validator import DatasetValidator  # noqa: TCH001 (runtime: Depends())
from release_retention.api.dependencies import get_dataset_validator
from release_retention.api.schemas import ValidateDatasetRequest, ValidateDatasetResponse

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["datasets"])

DatasetValidatorDep = Annotated[DatasetValidator, Depends(get_dataset_validator)]


@router.post(
    "/datasets/validate",
    response_model=ValidateDatasetResponse,
    response_model_by_alias=True,
)
def validate_dataset(
    body: ValidateDatasetRequest,
    validator: DatasetValidatorDep,
) -> ValidateDatasetResponse:
    """Validate a dataset. Always 200; problems are reported in the body."""
    logger.info("dataset_validate_requested", correlation_id=body.correlation_id)
    return validator.validate(body.dataset)
