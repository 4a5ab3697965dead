"""Investor onboarding wizard: 3-step state machine.

    BASIC_INFO ──next──▶ INVESTMENT ──next──▶ DETAILS ──next──▶ COMPLETED
               ◀─back──             ◀─back──

Each ``advance()``:
  1. validates the current step (errors stay local, nothing is sent)
  2. maps the fields into the step's payload
  3. awaits the deal API call(s) for the step, one after another
  4. applies the returned identifiers and moves forward by one step

A failed call leaves the step unchanged and stores the message in
``api_error``. Session state is only touched after calls settle, in one
synchronous block, so readers never see a half-applied transition.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from dealdesk.middleware.exceptions import (
    GatewayError,
    PayloadMappingError,
    WizardBusyError,
    WizardStateError,
)
from dealdesk.schemas.deal import DealContext
from dealdesk.schemas.wizard import WizardProgress, WizardStep
from dealdesk.services import mapper
from dealdesk.services.gateway import DealApiGateway, Encoding
from dealdesk.services.validation import validate

logger = logging.getLogger("dealdesk.wizard")


@dataclass
class WizardSession:
    """State of one onboarding attempt for one deal."""
    deal: DealContext
    step: WizardStep = WizardStep.BASIC_INFO
    fields: dict[str, Any] = field(default_factory=dict)
    investor_id: int | str | None = None
    access_link: str | None = None
    profile_id: int | str | None = None
    field_errors: dict[str, str] = field(default_factory=dict)
    api_error: str | None = None
    redirect_url: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.step == WizardStep.COMPLETED


@dataclass
class _StepResult:
    """Identifiers produced by a step's remote calls."""
    investor_id: int | str | None = None
    access_link: str | None = None
    profile_id: int | str | None = None


class WizardController:
    def __init__(
        self,
        deal: DealContext,
        gateway: DealApiGateway,
        *,
        redirect_on_access_link: bool = False,
        link_encoding: Encoding = "json",
    ):
        self.session = WizardSession(deal=deal)
        self.gateway = gateway
        self.redirect_on_access_link = redirect_on_access_link
        self.link_encoding = link_encoding
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _ensure_idle(self) -> None:
        if self.busy:
            raise WizardBusyError()

    def snapshot(self) -> WizardProgress:
        s = self.session
        return WizardProgress(
            deal=s.deal,
            step=s.step,
            step_label=s.step.label,
            fields=dict(s.fields),
            investor_id=s.investor_id,
            access_link=s.access_link,
            profile_id=s.profile_id,
            field_errors=dict(s.field_errors),
            api_error=s.api_error,
            busy=self.busy,
            is_complete=s.is_complete,
            redirect_url=s.redirect_url,
        )

    # ── Operator actions ─────────────────────────────────────

    def update_fields(self, changes: Mapping[str, Any]) -> WizardProgress:
        """Merge edited values; clears the API error and the edited fields' errors.

        A ``None`` value leaves the stored field as it is.
        """
        self._ensure_idle()
        if self.session.is_complete:
            raise WizardStateError("Onboarding is already complete")

        s = self.session
        changes = {k: v for k, v in changes.items() if v is not None}
        s.fields = {**s.fields, **changes}
        s.field_errors = {k: v for k, v in s.field_errors.items() if k not in changes}
        s.api_error = None
        return self.snapshot()

    def go_back(self) -> WizardProgress:
        self._ensure_idle()
        s = self.session
        if s.step not in (WizardStep.INVESTMENT, WizardStep.DETAILS):
            raise WizardStateError(f"Cannot go back from {s.step.label}")
        s.step = WizardStep(s.step - 1)
        logger.info("Deal %s: back to %s", s.deal.deal_id, s.step.label)
        return self.snapshot()

    async def advance(self) -> WizardProgress:
        """Submit the current step.

        Returns the new progress; validation and deal API failures are
        reported through ``field_errors`` / ``api_error``, not raised.

        Raises:
            WizardBusyError: A transition is already in flight
            WizardStateError: The wizard is already complete
        """
        self._ensure_idle()
        s = self.session
        if s.is_complete:
            raise WizardStateError("Onboarding is already complete")

        step = s.step
        errors = validate(step, s.fields)
        s.field_errors = errors
        if errors:
            logger.info("Deal %s: %s blocked by %d field error(s)",
                        s.deal.deal_id, step.label, len(errors))
            return self.snapshot()

        fields = dict(s.fields)
        async with self._lock:
            try:
                result = await self._submit(step, fields)
            except (GatewayError, PayloadMappingError) as e:
                logger.warning("Deal %s: %s failed: %s", s.deal.deal_id, step.label, e.message)
                s.api_error = e.message
                return self.snapshot()
            self._apply(step, result)

        return self.snapshot()

    # ── Step execution ───────────────────────────────────────

    async def _submit(self, step: WizardStep, fields: dict[str, Any]) -> _StepResult:
        s = self.session
        deal = s.deal

        if step == WizardStep.BASIC_INFO:
            payload = mapper.map_basic_info(fields, deal)
            investor_id = await self.gateway.create_investor(deal.deal_id, payload)
            return _StepResult(investor_id=investor_id)

        if step == WizardStep.INVESTMENT:
            payload = mapper.map_investment(fields, deal)
            access_link = await self.gateway.update_investment(
                deal.deal_id, s.investor_id, payload,
            )
            return _StepResult(access_link=access_link)

        # DETAILS: create the profile, then point the investor at it
        profile = mapper.map_details(fields, s.investor_id)
        profile_id = await self.gateway.create_investor_profile(
            profile.investorInfo, profile,
        )
        await self.gateway.link_profile_to_investor(
            deal.deal_id,
            profile_id,
            mapper.map_profile_link(profile_id),
            encoding=self.link_encoding,
        )
        return _StepResult(profile_id=profile_id)

    def _apply(self, step: WizardStep, result: _StepResult) -> None:
        s = self.session
        if result.investor_id is not None:
            if s.investor_id is None:
                s.investor_id = result.investor_id
            elif result.investor_id != s.investor_id:
                logger.warning(
                    "Deal %s: resubmitted basic info returned investor %s, keeping %s",
                    s.deal.deal_id, result.investor_id, s.investor_id,
                )
        if result.access_link:
            s.access_link = result.access_link
        if result.profile_id is not None:
            s.profile_id = result.profile_id

        s.api_error = None
        s.step = WizardStep(step + 1)
        if s.is_complete and self.redirect_on_access_link and s.access_link:
            s.redirect_url = s.access_link

        logger.info("Deal %s: %s done, now at %s",
                    s.deal.deal_id, step.label, s.step.label)
