"""Card definitions and the card catalog that supplies decks."""

from __future__ import annotations

from dataclasses import dataclass, field
from importlib import resources
import json
from pathlib import Path
import random
from typing import Any, Mapping, Self, Sequence

from pydantic import BaseModel, Field, ValidationError, model_validator

from framework.errors import CardCatalogError
from framework.logging import get_logger

from .crossboard_state import Axis

logger = get_logger("cards")

METRIC_NAMES: dict[Axis, str] = {
    Axis.HORIZONTAL: "width",
    Axis.VERTICAL: "height",
}


@dataclass(frozen=True)
class CardDefinition:
    """Immutable card with up to two independent metrics."""

    id: str
    name: str
    width: float | None = None
    height: float | None = None
    image_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def __post_init__(self) -> None:
        if self.width is None and self.height is None:
            raise ValueError(f"Card {self.id!r} must have at least one metric (width or height).")

    def metric_for(self, axis: Axis) -> float | None:
        """Return the metric compared along ``axis``."""
        if axis is Axis.HORIZONTAL:
            return self.width
        if axis is Axis.VERTICAL:
            return self.height
        return None

    def can_be_placed_on(self, axis: Axis) -> bool:
        if axis is Axis.ORIGIN:
            return self.can_be_origin()
        return self.metric_for(axis) is not None

    def can_be_origin(self) -> bool:
        return self.width is not None and self.height is not None

    def playable_axes(self) -> list[Axis]:
        return [axis for axis in (Axis.HORIZONTAL, Axis.VERTICAL) if self.metric_for(axis) is not None]

    @staticmethod
    def metric_name(axis: Axis) -> str:
        return METRIC_NAMES.get(axis, "unknown")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "width": self.width,
            "height": self.height,
            "image_url": self.image_url,
            "metadata": dict(self.metadata),
        }

    def to_public_dict(self) -> dict[str, Any]:
        """Card data without its metric values."""
        return {
            "id": self.id,
            "name": self.name,
            "image_url": self.image_url,
            "playable_axes": [axis.value for axis in self.playable_axes()],
            "can_be_origin": self.can_be_origin(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        width = data.get("width")
        height = data.get("height")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            width=float(width) if width is not None else None,
            height=float(height) if height is not None else None,
            image_url=data.get("image_url"),
            metadata=dict(data.get("metadata") or {}),
        )


class CardRecord(BaseModel):
    """Schema for one card entry in a catalog file."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    width: float | None = Field(default=None, gt=0)
    height: float | None = Field(default=None, gt=0)
    image_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _require_metric(self) -> "CardRecord":
        if self.width is None and self.height is None:
            raise ValueError("Card must have at least one metric (width or height)")
        return self

    def to_definition(self) -> CardDefinition:
        return CardDefinition(
            id=self.id,
            name=self.name,
            width=self.width,
            height=self.height,
            image_url=self.image_url,
            metadata=dict(self.metadata),
        )


def default_cards_path() -> Path:
    """Return the path of the catalog bundled with the package."""
    return Path(str(resources.files("crossboard").joinpath("data/cards.json")))


class CardCatalog:
    """Immutable set of card definitions plus deck helpers."""

    def __init__(self, cards: Sequence[CardDefinition], *, rng: random.Random | None = None):
        self._cards: list[CardDefinition] = []
        self._by_id: dict[str, CardDefinition] = {}
        for card in cards:
            if card.id in self._by_id:
                raise CardCatalogError(f"Duplicate card id {card.id!r}.")
            self._cards.append(card)
            self._by_id[card.id] = card
        self._rng = rng or random.Random()

    @classmethod
    def from_records(cls, records: Sequence[Mapping[str, Any]], *, rng: random.Random | None = None) -> Self:
        """Validate raw records, skipping invalid entries."""
        cards: list[CardDefinition] = []
        seen: set[str] = set()
        for raw in records:
            try:
                record = CardRecord.model_validate(raw)
            except ValidationError as exc:
                card_id = raw.get("id") if isinstance(raw, Mapping) else None
                logger.warning("invalid_card_skipped", card_id=card_id, errors=exc.error_count())
                continue
            if record.id in seen:
                logger.warning("duplicate_card_skipped", card_id=record.id)
                continue
            seen.add(record.id)
            cards.append(record.to_definition())
        return cls(cards, rng=rng)

    @classmethod
    def from_json(cls, path: str | Path | None = None, *, rng: random.Random | None = None) -> Self:
        """Load a catalog from a JSON array of card records."""
        source = Path(path) if path is not None else default_cards_path()
        try:
            raw = json.loads(source.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CardCatalogError(f"Could not load card data from {source}: {exc}") from exc
        if not isinstance(raw, list):
            raise CardCatalogError(f"Card data in {source} must be a JSON array.")
        catalog = cls.from_records(raw, rng=rng)
        logger.info("card_catalog_loaded", path=str(source), cards=len(catalog))
        return catalog

    def __len__(self) -> int:
        return len(self._cards)

    def all_cards(self) -> list[CardDefinition]:
        return list(self._cards)

    def get(self, card_id: str) -> CardDefinition | None:
        return self._by_id.get(card_id)

    def origin_cards(self) -> list[CardDefinition]:
        return [card for card in self._cards if card.can_be_origin()]

    def cards_for_axis(self, axis: Axis) -> list[CardDefinition]:
        return [card for card in self._cards if card.can_be_placed_on(axis)]

    def search(self, query: str) -> list[CardDefinition]:
        term = query.strip().lower()
        return [card for card in self._cards if term in card.name.lower() or term in card.id.lower()]

    def shuffled_deck(self) -> list[CardDefinition]:
        """Return a uniformly shuffled copy of every card (Fisher-Yates)."""
        deck = list(self._cards)
        for index in range(len(deck) - 1, 0, -1):
            swap = self._rng.randint(0, index)
            deck[index], deck[swap] = deck[swap], deck[index]
        return deck

    @staticmethod
    def deal_cards(
        deck: list[CardDefinition],
        player_ids: Sequence[str],
        per_player: int,
    ) -> dict[str, list[CardDefinition]]:
        """Deal round-robin, one card at a time, popping from the end of ``deck``."""
        hands: dict[str, list[CardDefinition]] = {player_id: [] for player_id in player_ids}
        for _ in range(per_player):
            for player_id in player_ids:
                if deck:
                    hands[player_id].append(deck.pop())
        return hands

    @staticmethod
    def draw_one(deck: list[CardDefinition]) -> CardDefinition | None:
        if not deck:
            return None
        return deck.pop()

    def stats(self) -> dict[str, Any]:
        """Summarize the catalog composition."""
        widths = [card.width for card in self._cards if card.width is not None]
        heights = [card.height for card in self._cards if card.height is not None]
        horizontal = {card.id for card in self.cards_for_axis(Axis.HORIZONTAL)}
        vertical = {card.id for card in self.cards_for_axis(Axis.VERTICAL)}
        return {
            "total_cards": len(self._cards),
            "origin_cards": len(self.origin_cards()),
            "horizontal_only_cards": len(horizontal - vertical),
            "vertical_only_cards": len(vertical - horizontal),
            "dual_axis_cards": len(horizontal & vertical),
            "width_range": {"min": min(widths), "max": max(widths)} if widths else None,
            "height_range": {"min": min(heights), "max": max(heights)} if heights else None,
        }
