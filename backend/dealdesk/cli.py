"""Management CLI for the deal API.

Usage:
    python -m dealdesk.cli check-api                 # Is the deal API reachable?
    python -m dealdesk.cli list-deals                # Show all deals
    python -m dealdesk.cli list-investors [DEAL_ID]  # Investors of a deal
"""

import asyncio
import sys

from dealdesk.config import settings
from dealdesk.middleware.exceptions import ApplicationError, GatewayError, TransportError
from dealdesk.services.gateway import DealApiGateway, build_client


async def _with_gateway(action):
    async with build_client(settings.deal_api_base_url, settings.deal_api_timeout_seconds) as client:
        return await action(DealApiGateway(client))


async def check_api() -> int:
    """Call GET /deals and report whether the API is usable."""
    print(f"Checking deal API at {settings.deal_api_base_url}/deals")
    try:
        body = await _with_gateway(lambda gw: gw.list_deals())
    except TransportError as e:
        print(f"  Network error: {e.message}")
        return 1
    except ApplicationError as e:
        print(f"  API error {e.upstream_status}: {e.message}")
        return 1

    print("  OK")
    print(f"  Found {len(body.get('items') or [])} deal(s)")
    return 0


async def list_deals() -> int:
    body = await _with_gateway(lambda gw: gw.list_deals())
    items = body.get("items") or []
    for deal in items:
        print(f"  {deal.get('id')}  {deal.get('title', '')}  "
              f"price/security={deal.get('price_per_security')}")
    print(f"\n{len(items)} deal(s)")
    return 0


async def list_investors(deal_id: str) -> int:
    body = await _with_gateway(lambda gw: gw.list_investors(deal_id))
    items = body.get("items") or []
    for investor in items:
        name = f"{investor.get('first_name', '')} {investor.get('last_name', '')}".strip()
        print(f"  {investor.get('id')}  {name}  {investor.get('email', '')}")
    print(f"\n{len(items)} investor(s)")
    return 0


def main(argv: list[str]) -> int:
    cmd = argv[1] if len(argv) > 1 else ""
    try:
        if cmd == "check-api":
            return asyncio.run(check_api())
        if cmd == "list-deals":
            return asyncio.run(list_deals())
        if cmd == "list-investors":
            deal_id = argv[2] if len(argv) > 2 else settings.default_deal_id
            if not deal_id:
                print("Pass a deal id or set DEFAULT_DEAL_ID")
                return 2
            return asyncio.run(list_investors(deal_id))
    except GatewayError as e:
        print(f"  FAILED: {e.message}")
        return 1

    print("Usage: python -m dealdesk.cli [check-api|list-deals|list-investors [DEAL_ID]]")
    return 2


if __name__ == "__main__":
    sys.exit(main(sys.argv))
