import logging

from fastapi import APIRouter, HTTPException, status

from fbr_engine.api.deps import SroClientDep
from fbr_engine.schemas.invoice import NormalizationResponse
from fbr_engine.schemas.ledger import LedgerDocument
from fbr_engine.services.pipelines.invoice import InvoiceNormalizationPipeline

router = APIRouter(prefix="/invoice", tags=["invoice"])

logger = logging.getLogger(__name__)


@router.post(
    "/normalize",
    summary="Normalize ledger lines into invoice items",
    response_model=NormalizationResponse,
)
async def normalize_invoice(document: LedgerDocument, sro_client: SroClientDep) -> NormalizationResponse:
    """Classify, allocate discounts, compute taxes and attach schedule references."""

    if not document.lines:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Document has no lines.",
        )

    pipeline = InvoiceNormalizationPipeline(lookup_client=sro_client)
    try:
        result = await pipeline.run(document)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - passthrough for service failures
        logger.exception("Normalization failed for document %s", document.document_number)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Invoice normalization failed.",
        ) from exc

    return NormalizationResponse(
        success=not result.errors,
        data=result,
        message="ok" if not result.errors else "validation findings reported",
    )
