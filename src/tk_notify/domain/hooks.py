"""Post-commit collaborators. Both are best effort: callers log and swallow their failures."""
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from src.tk_offer.domain.models import BuyerOffer
    from src.tk_settlement.domain.models import SettledTransaction


class InstantMatchHook(Protocol):
    async def check_for_instant_match(self, offer: "BuyerOffer") -> None: ...


class MatchNotifier(Protocol):
    async def notify_match(self, transaction: "SettledTransaction") -> None: ...
