"""Service container: built once in the lifespan, stored on app.state.

Routers resolve services through the dependencies below, so tests can swap
them with app.dependency_overrides without touching the database.
"""
from dataclasses import dataclass

from fastapi import Request

from src.tk_listing.application.service import BulkIntakeService
from src.tk_offer.application.lifecycle import OfferLifecycleManager
from src.tk_settlement.engine.engine import SettlementEngine


@dataclass
class ServiceContainer:
    lifecycle: OfferLifecycleManager
    settlement: SettlementEngine
    bulk_intake: BulkIntakeService


def _container(request: Request) -> ServiceContainer:
    container: ServiceContainer = request.app.state.services
    return container


def get_lifecycle(request: Request) -> OfferLifecycleManager:
    return _container(request).lifecycle


def get_settlement(request: Request) -> SettlementEngine:
    return _container(request).settlement


def get_bulk_intake(request: Request) -> BulkIntakeService:
    return _container(request).bulk_intake
