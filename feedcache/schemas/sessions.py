"""Schemas for session, cart and row-schedule endpoints."""

from pydantic import BaseModel, Field


class SessionUpdateRequest(BaseModel):
    user: str = Field(min_length=1, max_length=200)
    item: str | None = Field(default=None, max_length=200)


class SessionResponse(BaseModel):
    token: str
    user: str
    viewed: list[str] = Field(default_factory=list)
    cart: dict[str, int] = Field(default_factory=dict)


class CartLineRequest(BaseModel):
    """A count of zero or less removes the line."""

    count: int


class RowScheduleRequest(BaseModel):
    delay: float = Field(description="Refresh interval in seconds; <= 0 stops refreshing")
