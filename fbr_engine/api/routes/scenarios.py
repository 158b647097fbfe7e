from fastapi import APIRouter
from pydantic import BaseModel, Field

from fbr_engine.services.catalog import get_catalog

router = APIRouter(prefix="/scenarios", tags=["scenarios"])


class ScenarioInfo(BaseModel):
    scenario_code: str = Field(..., description="Scenario code (SNxxx).")
    label: str = Field(..., description="Short sale-type label.")
    fbr_sale_type: str = Field(..., description="Authority sale-type text.")
    display_name: str = Field(..., description="Human-readable name.")
    requires_reference: bool = Field(..., description="Whether a schedule reference is mandatory.")
    regime: str = Field(..., description="Tax regime category.")


@router.get("", response_model=list[ScenarioInfo], summary="List supported scenarios")
async def list_scenarios() -> list[ScenarioInfo]:
    return [
        ScenarioInfo(
            scenario_code=definition.scenario_code,
            label=definition.label,
            fbr_sale_type=definition.fbr_sale_type,
            display_name=definition.display_name,
            requires_reference=definition.requires_reference,
            regime=definition.category.value,
        )
        for definition in get_catalog()
    ]
