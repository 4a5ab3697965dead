"""Map wizard fields to deal API payloads.

Each ``map_*`` function turns the accumulated wizard fields into the body
one remote operation expects:

  map_basic_info     → POST  /deals/{deal}/investors
  map_investment     → PATCH /deals/{deal}/investors/{investor}
  map_details        → POST  /investor_profiles/{category}
  map_profile_link   → PATCH /deals/{deal}/investors/{profile}

Rounding of the security count is half-up: 350 / 100 gives 4 securities.
"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping

from dealdesk.middleware.exceptions import PayloadMappingError, UnsupportedCategoryError
from dealdesk.schemas.deal import DealContext
from dealdesk.schemas.wizard import (
    IndividualProfilePayload,
    InvestmentPayload,
    InvestorCreatePayload,
    JointProfilePayload,
    ProfileLinkPayload,
    ProfilePayload,
)
from dealdesk.utils.formatting import (
    clean,
    coerce_identifier,
    format_iso_date,
    parse_amount,
    strip_hyphens,
)

SELF_SERVICE_TAG = "web-form"
PROFILE_LINK_STEP = "contact-information"

# The deal API has not yet issued distinct profile ids for individuals, so
# the investor id is sent as both investor_id and investor_profile_id.
PROFILE_LINK_REUSES_INVESTOR_ID = True


def map_basic_info(fields: Mapping[str, Any], deal: DealContext) -> InvestorCreatePayload:
    return InvestorCreatePayload(
        first_name=clean(fields.get("first_name")),
        last_name=clean(fields.get("last_name")),
        email=clean(fields.get("email")),
        phone_number=clean(fields.get("phone")),
        tags=[SELF_SERVICE_TAG],
        deal_id=deal.deal_id,
    )


def security_count(amount: Decimal, price_per_security: Any) -> int:
    """Whole securities bought by ``amount``, rounded half-up.

    Raises:
        PayloadMappingError: If the count does not fit the decimal context
    """
    price = Decimal(str(price_per_security))
    if price <= 0:
        raise ValueError("Price per security must be positive")
    try:
        return int((amount / price).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        raise PayloadMappingError("Investment amount is too large for this deal") from None


def map_investment(fields: Mapping[str, Any], deal: DealContext) -> InvestmentPayload:
    amount = parse_amount(fields.get("investment_amount"))
    value = float(amount)
    if not math.isfinite(value):
        raise PayloadMappingError("Investment amount is too large")
    return InvestmentPayload(
        investment_value=value,
        number_of_securities=security_count(amount, deal.price_per_security),
    )


def _profile_fields(fields: Mapping[str, Any], investor_id: Any) -> dict[str, Any]:
    return {
        "first_name": clean(fields.get("first_name")),
        "email": clean(fields.get("email")),
        "last_name": clean(fields.get("last_name")),
        "phone_number": strip_hyphens(fields.get("phone")),
        "investorInfo": clean(fields.get("investor_type")),
        "city": clean(fields.get("city")),
        "country": clean(fields.get("country")),
        "date_of_birth": format_iso_date(fields.get("date_of_birth")),
        "investor_id": coerce_identifier(investor_id),
        "postal_code": clean(fields.get("postal_code")),
        "region": clean(fields.get("state")),
        "street_address": clean(fields.get("street_address")),
        "unit2": clean(fields.get("unit")),
        "taxpayer_id": clean(fields.get("taxpayer_id")),
    }


def _individual(fields: Mapping[str, Any], investor_id: Any) -> ProfilePayload:
    data = _profile_fields(fields, investor_id)
    if PROFILE_LINK_REUSES_INVESTOR_ID:
        data["investor_profile_id"] = data["investor_id"]
    return IndividualProfilePayload(**data)


def _joint(fields: Mapping[str, Any], investor_id: Any) -> ProfilePayload:
    # Joint-holder fields are not collected by the wizard yet
    return JointProfilePayload(**_profile_fields(fields, investor_id))


PROFILE_MAPPERS = {
    "individuals": _individual,
    "joints": _joint,
}


def map_details(fields: Mapping[str, Any], investor_id: Any) -> ProfilePayload:
    """Build the category-specific profile payload.

    Raises:
        UnsupportedCategoryError: If the category has no mapping
    """
    category = clean(fields.get("investor_type"))
    mapper = PROFILE_MAPPERS.get(category)
    if mapper is None:
        raise UnsupportedCategoryError(category)
    return mapper(fields, investor_id)


def map_profile_link(profile_id: Any) -> ProfileLinkPayload:
    return ProfileLinkPayload(
        investor_profile_id=coerce_identifier(profile_id),
        current_step=PROFILE_LINK_STEP,
    )
