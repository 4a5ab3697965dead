"""Deal and investor shapes returned by the deal management API."""

from pydantic import BaseModel, ConfigDict, Field


class DealContext(BaseModel):
    """The deal an onboarding session runs against."""
    deal_id: int | str
    title: str = ""
    price_per_security: float = Field(gt=0)


class DealSummary(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int | str
    title: str | None = None
    price_per_security: float | None = None


class DealList(BaseModel):
    items: list[DealSummary]


class InvestorSummary(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int | str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    investment_value: float | None = None


class InvestorList(BaseModel):
    items: list[InvestorSummary]
