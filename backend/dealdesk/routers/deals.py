"""Deal and investor list views, read through from the deal API."""

from fastapi import APIRouter, Depends, HTTPException, status

from dealdesk.config import Settings, get_settings
from dealdesk.deps import get_gateway
from dealdesk.schemas.deal import DealList, InvestorList
from dealdesk.services.gateway import DealApiGateway

router = APIRouter()
investors_router = APIRouter()


@router.get("/", response_model=DealList)
async def list_deals(gateway: DealApiGateway = Depends(get_gateway)):
    body = await gateway.list_deals()
    return DealList(items=body.get("items") or [])


@router.get("/{deal_id}/investors", response_model=InvestorList)
async def list_deal_investors(
    deal_id: str,
    gateway: DealApiGateway = Depends(get_gateway),
):
    body = await gateway.list_investors(deal_id)
    return InvestorList(items=body.get("items") or [])


@investors_router.get("/", response_model=InvestorList)
async def list_default_deal_investors(
    gateway: DealApiGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """Investors of the configured default deal."""
    if not settings.default_deal_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No default deal configured (set DEFAULT_DEAL_ID)",
        )
    body = await gateway.list_investors(settings.default_deal_id)
    return InvestorList(items=body.get("items") or [])
