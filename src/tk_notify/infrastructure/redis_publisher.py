"""Redis pub/sub implementations of the notification and instant-match hooks.

The notification worker (email/push) and the instant-match worker subscribe
to these channels; this service only publishes.
"""
import logging
from dataclasses import asdict
from typing import TYPE_CHECKING

import redis.asyncio as aioredis

from config.settings import settings
from src.tk_common.redis_client import publish_json

if TYPE_CHECKING:
    from src.tk_offer.domain.models import BuyerOffer
    from src.tk_settlement.domain.models import SettledTransaction

logger = logging.getLogger(__name__)


class RedisInstantMatchHook:
    def __init__(self, redis: aioredis.Redis, channel: str = settings.INSTANT_MATCH_CHANNEL) -> None:
        self._redis = redis
        self._channel = channel

    async def check_for_instant_match(self, offer: "BuyerOffer") -> None:
        payload = {
            "type": "offer.created",
            "offer_id": offer.id,
            "event_id": offer.event_id,
            "sections": offer.sections,
            "max_price_cents": offer.max_price_cents,
            "quantity": offer.quantity,
            "expires_at": offer.expires_at,
        }
        receivers = await publish_json(self._redis, self._channel, payload)
        if receivers == 0:
            logger.debug("No instant-match subscriber for offer %s", offer.id)


class RedisMatchNotifier:
    def __init__(self, redis: aioredis.Redis, channel: str = settings.NOTIFY_MATCH_CHANNEL) -> None:
        self._redis = redis
        self._channel = channel

    async def notify_match(self, transaction: "SettledTransaction") -> None:
        payload = {"type": "offer.matched", "transaction": asdict(transaction)}
        await publish_json(self._redis, self._channel, payload)
        logger.info(
            "Match notification published: transaction=%s offer=%s",
            transaction.id, transaction.offer_id,
        )
