"""Pricing Engine contract: pure input/output, no side effects on offers."""
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class PricingRequest:
    event_id: str
    sections: tuple[str, ...]
    max_price_cents: int
    quantity: int


@dataclass(frozen=True)
class PricingSuggestion:
    suggested_price_cents: int
    probability: float  # 0.0-1.0 chance a seller accepts at max_price


class PricingEngineProtocol(Protocol):
    async def suggest(self, req: PricingRequest) -> PricingSuggestion: ...
