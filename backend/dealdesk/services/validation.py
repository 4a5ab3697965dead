"""Per-step field validation for the onboarding wizard.

``validate(step, fields)`` is pure: it reads the accumulated wizard fields
and returns ``{field: message}``. An empty mapping means the step may be
submitted to the deal API.
"""

from typing import Any, Mapping

from dealdesk.schemas.wizard import WizardStep
from dealdesk.utils.formatting import clean, parse_amount, parse_calendar_date

MINIMUM_INVESTMENT = 300
MAXIMUM_INVESTMENT = 10**12

# Categories the operator can pick; each has a profile payload mapping
INVESTOR_CATEGORIES: dict[str, str] = {
    "individuals": "Individual",
    "joints": "Joint Account",
}

FIELD_LABELS: dict[str, str] = {
    "first_name": "First name",
    "last_name": "Last name",
    "email": "Email",
    "phone": "Phone",
    "investment_amount": "Investment amount",
    "investor_type": "Investor type",
    "street_address": "Street address",
    "city": "City",
    "postal_code": "Postal code",
    "state": "State",
    "country": "Country",
    "date_of_birth": "Date of birth",
    "taxpayer_id": "Taxpayer ID",
}

REQUIRED_FIELDS: dict[WizardStep, list[str]] = {
    WizardStep.BASIC_INFO: ["first_name", "last_name", "email", "phone"],
    WizardStep.INVESTMENT: [],
    WizardStep.DETAILS: [
        "investor_type",
        "street_address",
        "city",
        "postal_code",
        "state",
        "country",
        "date_of_birth",
        "taxpayer_id",
    ],
    WizardStep.COMPLETED: [],
}


def _required(fields: Mapping[str, Any], names: list[str]) -> dict[str, str]:
    errors = {}
    for name in names:
        if not clean(fields.get(name)):
            errors[name] = f"{FIELD_LABELS[name]} is required"
    return errors


def _check_investment(fields: Mapping[str, Any]) -> dict[str, str]:
    # A blank amount reads as 0 and gets the minimum message
    try:
        amount = parse_amount(fields.get("investment_amount"))
    except ValueError:
        return {"investment_amount": "Investment amount must be a number"}
    if amount < MINIMUM_INVESTMENT:
        return {"investment_amount": f"Minimum investment is ${MINIMUM_INVESTMENT}"}
    if amount > MAXIMUM_INVESTMENT:
        return {"investment_amount": "Investment amount is too large"}
    return {}


def _check_details(fields: Mapping[str, Any]) -> dict[str, str]:
    errors = {}

    category = clean(fields.get("investor_type"))
    if category and category not in INVESTOR_CATEGORIES:
        options = ", ".join(INVESTOR_CATEGORIES)
        errors["investor_type"] = f"Investor type must be one of: {options}"

    if clean(fields.get("date_of_birth")):
        try:
            parse_calendar_date(fields["date_of_birth"])
        except ValueError:
            errors["date_of_birth"] = "Date of birth is not a valid date"

    return errors


def validate(step: WizardStep, fields: Mapping[str, Any]) -> dict[str, str]:
    """Return field errors for ``step``; empty when the step is valid."""
    step = WizardStep(step)
    errors = _required(fields, REQUIRED_FIELDS[step])

    if step == WizardStep.INVESTMENT:
        errors.update(_check_investment(fields))
    elif step == WizardStep.DETAILS:
        # Presence errors win over format errors for the same field
        for name, message in _check_details(fields).items():
            errors.setdefault(name, message)

    return errors
