"""HttpPricingEngine: httpx client for the external Pricing Engine."""
import httpx

from config.settings import settings
from src.tk_common.errors import PricingUnavailableError
from src.tk_pricing.domain.models import PricingRequest, PricingSuggestion


class HttpPricingEngine:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_settings(cls) -> "HttpPricingEngine":
        return cls(
            httpx.AsyncClient(
                base_url=settings.PRICING_SERVICE_URL,
                timeout=httpx.Timeout(settings.PRICING_TIMEOUT_SECONDS),
            )
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def suggest(self, req: PricingRequest) -> PricingSuggestion:
        try:
            resp = await self._client.post(
                "/suggestions",
                json={
                    "event_id": req.event_id,
                    "sections": list(req.sections),
                    "max_price_cents": req.max_price_cents,
                    "quantity": req.quantity,
                },
            )
            resp.raise_for_status()
            body = resp.json()
            return PricingSuggestion(
                suggested_price_cents=int(body["suggested_price_cents"]),
                probability=float(body["probability"]),
            )
        except httpx.HTTPError as exc:
            raise PricingUnavailableError(str(exc) or type(exc).__name__) from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise PricingUnavailableError(f"malformed response: {exc}") from exc
