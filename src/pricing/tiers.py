"""Discount tier tables.

Core design principles:
- A TierTable is validated once, at construction, and is immutable afterwards
- Tiers are contiguous: each tier starts exactly one participant after the previous one ends
- Money is computed on Decimal and rounded half-up to whole currency units
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Iterator, Sequence

ONE_UNIT = Decimal("1")
HUNDRED = Decimal("100")


class ConfigurationError(ValueError):
    """Raised when a tier table cannot be used to price a deal."""


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps floats such as 2.5 exact instead of their binary expansion.
    return Decimal(str(value))


def round_currency(value) -> int:
    """Round an amount half-up to whole currency units."""
    return int(to_decimal(value).quantize(ONE_UNIT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class Tier:
    """One discount step: a participant range and its price rule."""

    min_participants: int
    max_participants: int
    discount_percent: Decimal = Decimal("0")
    explicit_price: int | None = None
    commission_percent: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "discount_percent", to_decimal(self.discount_percent))
        if self.commission_percent is not None:
            object.__setattr__(self, "commission_percent", to_decimal(self.commission_percent))

    @property
    def size(self) -> int:
        return self.max_participants - self.min_participants + 1

    def contains(self, participant_count: int) -> bool:
        return self.min_participants <= participant_count <= self.max_participants

    def nominal_price(self, original_price) -> int:
        """Tier price before any position adjustment."""
        if self.explicit_price is not None:
            return round_currency(self.explicit_price)
        factor = ONE_UNIT - self.discount_percent / HUNDRED
        return round_currency(to_decimal(original_price) * factor)

    def position_within(self, position: int) -> int:
        """1-based rank of a global *position* inside this tier, clamped to the tier.

        Positions past ``max_participants`` land on the last seat; in a
        validated table that only happens on the final tier.
        """
        return min(max(position - self.min_participants + 1, 1), self.size)

    @classmethod
    def from_mapping(cls, data) -> "Tier":
        """Build a tier from a dict using either snake_case or camelCase keys."""

        def pick(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        explicit = pick("explicit_price", "explicitPrice", "price")
        commission = pick("commission_percent", "commissionPercent")
        try:
            return cls(
                min_participants=int(pick("min_participants", "minParticipants")),
                max_participants=int(pick("max_participants", "maxParticipants")),
                discount_percent=to_decimal(pick("discount_percent", "discountPercent", "discount", default=0)),
                explicit_price=int(explicit) if explicit is not None else None,
                commission_percent=to_decimal(commission) if commission is not None else None,
            )
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise ConfigurationError(f"Palier invalide: {data!r}") from exc


class TierTable(Sequence[Tier]):
    """Validated, ascending list of tiers for one deal or project.

    Raises
    ------
    ConfigurationError
        If the table is empty, does not start at 0 or 1, has a gap or an
        overlap, a tier whose ``max_participants`` is below its
        ``min_participants``, a discount outside 0..100, or a negative
        explicit price.
    """

    def __init__(self, tiers: Iterable[Tier]):
        ordered = sorted(tiers, key=lambda tier: tier.min_participants)
        self._validate(ordered)
        self._tiers: tuple[Tier, ...] = tuple(ordered)

    @staticmethod
    def _validate(tiers: list[Tier]) -> None:
        if not tiers:
            raise ConfigurationError("Au moins un palier est requis.")

        previous = None
        for index, tier in enumerate(tiers, start=1):
            if tier.min_participants < 0:
                raise ConfigurationError(f"Palier {index}: le minimum ne peut pas etre negatif.")
            if tier.max_participants < tier.min_participants:
                raise ConfigurationError(
                    f"Palier {index}: le maximum ({tier.max_participants}) est inferieur "
                    f"au minimum ({tier.min_participants})."
                )
            if not Decimal("0") <= tier.discount_percent <= HUNDRED:
                raise ConfigurationError(f"Palier {index}: la remise doit etre comprise entre 0 et 100.")
            if tier.explicit_price is not None and tier.explicit_price < 0:
                raise ConfigurationError(f"Palier {index}: le prix ne peut pas etre negatif.")
            if tier.commission_percent is not None and not (
                Decimal("0") <= tier.commission_percent <= HUNDRED
            ):
                raise ConfigurationError(f"Palier {index}: la commission doit etre comprise entre 0 et 100.")
            if previous is not None:
                if tier.min_participants <= previous.max_participants:
                    raise ConfigurationError(
                        f"Palier {index}: chevauche le palier precedent "
                        f"({previous.min_participants}-{previous.max_participants})."
                    )
                if tier.min_participants != previous.max_participants + 1:
                    raise ConfigurationError(
                        f"Palier {index}: trou entre {previous.max_participants} et {tier.min_participants}."
                    )
            previous = tier

        if tiers[0].min_participants > 1:
            raise ConfigurationError(
                f"Le premier palier doit commencer a 1 participant (commence a {tiers[0].min_participants})."
            )

    # -- Sequence protocol ------------------------------------------------

    def __getitem__(self, index):
        return self._tiers[index]

    def __len__(self) -> int:
        return len(self._tiers)

    def __iter__(self) -> Iterator[Tier]:
        return iter(self._tiers)

    def __repr__(self) -> str:
        return f"TierTable({list(self._tiers)!r})"

    # -- Lookups ------------------------------------------------------------

    @property
    def first(self) -> Tier:
        return self._tiers[0]

    @property
    def last(self) -> Tier:
        return self._tiers[-1]

    @property
    def max_participants(self) -> int:
        return self.last.max_participants

    def resolve(self, participant_count: int) -> Tier:
        return self._tiers[self.index_for(participant_count)]

    def index_for(self, participant_count: int) -> int:
        """Index of the tier whose range holds *participant_count*.

        Counts past the final tier stay on the final tier; counts below the
        first tier (an empty deal) are shown on the first tier.
        """
        if participant_count > self.last.max_participants:
            return len(self._tiers) - 1
        for index, tier in enumerate(self._tiers):
            if tier.contains(participant_count):
                return index
        return 0

    def next_tier(self, participant_count: int) -> Tier | None:
        index = self.index_for(participant_count)
        if index + 1 < len(self._tiers):
            return self._tiers[index + 1]
        return None

    def nominal_prices(self, original_price) -> list[int]:
        return [tier.nominal_price(original_price) for tier in self._tiers]

    def check_prices(self, original_price) -> None:
        """Reject tables whose nominal price goes up as participants grow."""
        prices = self.nominal_prices(original_price)
        for index in range(1, len(prices)):
            if prices[index] > prices[index - 1]:
                raise ConfigurationError(
                    f"Palier {index + 1}: le prix ({prices[index]}) depasse celui du "
                    f"palier precedent ({prices[index - 1]})."
                )

    @classmethod
    def from_rows(cls, rows: Iterable) -> "TierTable":
        """Build a table from dicts or from objects exposing tier attributes."""
        tiers = []
        for row in rows:
            if isinstance(row, Tier):
                tiers.append(row)
            elif isinstance(row, dict):
                tiers.append(Tier.from_mapping(row))
            else:
                tiers.append(row.as_tier())
        return cls(tiers)


def resolve_tier(tiers: Iterable[Tier], participant_count: int) -> Tier:
    """Return the active tier for *participant_count*.

    *tiers* may be an already-validated :class:`TierTable` or any iterable of
    :class:`Tier`; the latter is validated first.
    """
    table = tiers if isinstance(tiers, TierTable) else TierTable(tiers)
    return table.resolve(participant_count)
