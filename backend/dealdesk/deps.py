"""FastAPI dependencies for the deal API gateway and the active wizard.

Dependencies:
  get_gateway     → the DealApiGateway created at startup
  get_wizard      → the active WizardController (or 404)

Only one onboarding runs at a time; it lives on ``app.state.wizard``.
"""

from fastapi import Request

from dealdesk.middleware.exceptions import WizardNotStartedError
from dealdesk.services.gateway import DealApiGateway
from dealdesk.services.wizard import WizardController


def get_gateway(request: Request) -> DealApiGateway:
    return request.app.state.gateway


def get_wizard(request: Request) -> WizardController:
    wizard: WizardController | None = getattr(request.app.state, "wizard", None)
    if wizard is None:
        raise WizardNotStartedError()
    return wizard
