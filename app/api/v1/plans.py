"""Plan catalog API endpoints."""
from typing import List
from fastapi import APIRouter

from app.core.dependencies import Catalog
from app.schemas.plan import PlanResponse
from app.subscription.catalog import published_plans


router = APIRouter()


@router.get("", response_model=List[PlanResponse])
async def list_plans(catalog: Catalog):
    """List active plans in display order."""
    return [PlanResponse.model_validate(p) for p in published_plans(catalog)]
