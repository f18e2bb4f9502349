"""Promotions adapter factory (PROMOTIONS_ADAPTER: ``none`` or ``fake``)."""

import os

from marketplace.collaborators.promotions.port import PromotionsPort

_promotions: PromotionsPort | None = None


def get_promotions() -> PromotionsPort:
    global _promotions
    if _promotions is None:
        adapter = os.environ.get("PROMOTIONS_ADAPTER", "none")
        if adapter == "none":
            from marketplace.collaborators.promotions.fake_adapter import NoPromotions

            _promotions = NoPromotions()
        elif adapter == "fake":
            from marketplace.collaborators.promotions.fake_adapter import FakePromotions

            _promotions = FakePromotions()
        else:
            raise ValueError(f"Unknown promotions adapter: {adapter}")
    return _promotions


def set_promotions(promotions: PromotionsPort) -> None:
    global _promotions
    _promotions = promotions


def reset_promotions() -> None:
    global _promotions
    _promotions = None
