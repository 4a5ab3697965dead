"""Investor onboarding wizard: 3 steps, each backed by deal API calls.

Endpoints:
  GET    /api/wizard/categories → selectable investor types
  POST   /api/wizard/           → start onboarding for a deal
  GET    /api/wizard/           → current progress
  PATCH  /api/wizard/fields     → edit fields (clears the API error)
  POST   /api/wizard/next       → validate + submit the current step
  POST   /api/wizard/back       → return to the previous step
  DELETE /api/wizard/           → abort the onboarding

Design:
  - Step data goes straight to the deal API; nothing is staged locally.
  - Field and API errors come back inside WizardProgress, not as HTTP errors.
  - While a step is being submitted, next/back/edit answer 409.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from dealdesk.config import Settings, get_settings
from dealdesk.deps import get_gateway, get_wizard
from dealdesk.middleware.exceptions import WizardBusyError
from dealdesk.schemas.deal import DealContext
from dealdesk.schemas.wizard import CategoryOption, WizardFields, WizardProgress
from dealdesk.services.gateway import DealApiGateway
from dealdesk.services.validation import INVESTOR_CATEGORIES
from dealdesk.services.wizard import WizardController

logger = logging.getLogger(__name__)

router = APIRouter()


# ── GET /api/wizard/categories ───────────────────────────────

@router.get("/categories", response_model=list[CategoryOption])
async def list_categories():
    return [
        CategoryOption(value=value, label=label)
        for value, label in INVESTOR_CATEGORIES.items()
    ]


# ── POST /api/wizard/ ────────────────────────────────────────

@router.post("/", response_model=WizardProgress, status_code=status.HTTP_201_CREATED)
async def start_wizard(
    deal: DealContext,
    request: Request,
    gateway: DealApiGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """Begin onboarding for ``deal``; replaces any idle onboarding."""
    current: WizardController | None = getattr(request.app.state, "wizard", None)
    if current is not None and current.busy:
        raise WizardBusyError()

    wizard = WizardController(
        deal,
        gateway,
        redirect_on_access_link=settings.redirect_on_access_link,
        link_encoding=settings.profile_link_encoding,
    )
    request.app.state.wizard = wizard
    logger.info("Onboarding started for deal %s", deal.deal_id)
    return wizard.snapshot()


# ── GET /api/wizard/ ─────────────────────────────────────────

@router.get("/", response_model=WizardProgress)
async def get_progress(wizard: WizardController = Depends(get_wizard)):
    return wizard.snapshot()


# ── PATCH /api/wizard/fields ─────────────────────────────────

@router.patch("/fields", response_model=WizardProgress)
async def update_fields(
    body: WizardFields,
    wizard: WizardController = Depends(get_wizard),
):
    return wizard.update_fields(body.model_dump(exclude_unset=True, exclude_none=True))


# ── Step transitions ─────────────────────────────────────────

@router.post("/next", response_model=WizardProgress)
async def next_step(wizard: WizardController = Depends(get_wizard)):
    return await wizard.advance()


@router.post("/back", response_model=WizardProgress)
async def previous_step(wizard: WizardController = Depends(get_wizard)):
    return wizard.go_back()


# ── DELETE /api/wizard/ ──────────────────────────────────────

@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
async def abort_wizard(
    request: Request,
    wizard: WizardController = Depends(get_wizard),
):
    if wizard.busy:
        raise WizardBusyError()
    request.app.state.wizard = None
    logger.info("Onboarding aborted for deal %s", wizard.session.deal.deal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
