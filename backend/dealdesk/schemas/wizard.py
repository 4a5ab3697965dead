"""Pydantic schemas for the 3-step investor onboarding wizard.

``WizardFields`` uses Optional fields so PATCH (partial edit) works.
The ``*Payload`` models are the exact bodies sent to the deal API; the
field mapper builds them and the gateway serialises them.
"""

from enum import IntEnum
from typing import Any

from pydantic import BaseModel

from dealdesk.schemas.deal import DealContext


# ── Steps ────────────────────────────────────────────────────

class WizardStep(IntEnum):
    BASIC_INFO = 1
    INVESTMENT = 2
    DETAILS = 3
    COMPLETED = 4

    @property
    def label(self) -> str:
        return STEP_LABELS[self]


STEP_LABELS = {
    WizardStep.BASIC_INFO: "Basic Info",
    WizardStep.INVESTMENT: "Investment",
    WizardStep.DETAILS: "Details",
    WizardStep.COMPLETED: "Completed",
}


# ── Operator input ───────────────────────────────────────────

class WizardFields(BaseModel):
    # Step 1: Basic info
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None

    # Step 2: Investment
    investment_amount: str | float | None = None

    # Step 3: Details
    investor_type: str | None = None
    street_address: str | None = None
    unit: str | None = None
    city: str | None = None
    postal_code: str | None = None
    state: str | None = None
    country: str | None = None
    date_of_birth: str | None = None
    taxpayer_id: str | None = None


# ── Wizard state / progress ─────────────────────────────────

class WizardProgress(BaseModel):
    deal: DealContext
    step: WizardStep
    step_label: str
    fields: dict[str, Any] = {}
    investor_id: int | str | None = None
    access_link: str | None = None
    profile_id: int | str | None = None
    field_errors: dict[str, str] = {}
    api_error: str | None = None
    busy: bool = False
    is_complete: bool = False
    redirect_url: str | None = None


class CategoryOption(BaseModel):
    value: str
    label: str


# ── Deal API payloads ────────────────────────────────────────

class InvestorCreatePayload(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone_number: str
    tags: list[str]
    deal_id: int | str


class InvestmentPayload(BaseModel):
    investment_value: float
    number_of_securities: int


class ProfilePayload(BaseModel):
    """Fields shared by every investor profile category."""
    first_name: str
    email: str
    last_name: str
    phone_number: str
    investorInfo: str
    city: str
    country: str
    date_of_birth: str
    investor_id: int | str
    postal_code: str
    region: str
    street_address: str
    unit2: str
    taxpayer_id: str


class IndividualProfilePayload(ProfilePayload):
    investor_profile_id: int | str


class JointProfilePayload(ProfilePayload):
    pass


class ProfileLinkPayload(BaseModel):
    investor_profile_id: int | str
    current_step: str = "contact-information"