"""
Pricing calculations and rate management.

Handles cost computations for Claude model families.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Mapping, Optional

from .token_counter import TokenCounts

TOKENS_PER_MILLION = Decimal("1000000")


@dataclass(frozen=True)
class ModelPricing:
    """Per-million-token pricing for a model family."""
    input_per_million: Decimal
    output_per_million: Decimal
    cache_write_per_million: Decimal
    cache_read_per_million: Decimal

    def calculate_cost(
        self,
        input_tokens: int,
        output_tokens: int,
        cache_write_tokens: int = 0,
        cache_read_tokens: int = 0,
    ) -> float:
        """Calculate the cost of the given token counts.

        Cache reads are billed too; leaving them out under-counts cost
        for cache-heavy sessions.

        Returns:
            Cost in USD, unrounded
        """
        total = (
            (Decimal(input_tokens) / TOKENS_PER_MILLION) * self.input_per_million
            + (Decimal(output_tokens) / TOKENS_PER_MILLION) * self.output_per_million
            + (Decimal(cache_write_tokens) / TOKENS_PER_MILLION) * self.cache_write_per_million
            + (Decimal(cache_read_tokens) / TOKENS_PER_MILLION) * self.cache_read_per_million
        )
        return float(total)


OPUS = ModelPricing(
    input_per_million=Decimal("5.00"),
    output_per_million=Decimal("25.00"),
    cache_write_per_million=Decimal("6.25"),
    cache_read_per_million=Decimal("0.50"),
)

SONNET = ModelPricing(
    input_per_million=Decimal("3.00"),
    output_per_million=Decimal("15.00"),
    cache_write_per_million=Decimal("3.75"),
    cache_read_per_million=Decimal("0.30"),
)

HAIKU = ModelPricing(
    input_per_million=Decimal("0.80"),
    output_per_million=Decimal("4.00"),
    cache_write_per_million=Decimal("1.00"),
    cache_read_per_million=Decimal("0.08"),
)


@dataclass(frozen=True)
class PricingTable:
    """Rate cards keyed by family keyword.

    Families are matched by case-insensitive substring in insertion order,
    so "opus" wins over "sonnet" when both appear in a model name.
    """
    families: Mapping[str, ModelPricing]
    default_family: str = "sonnet"

    def __post_init__(self):
        """Validate the default family has a rate card."""
        if self.default_family not in self.families:
            raise ValueError(f"Unknown default family: {self.default_family}")

    def family_for(self, model: str) -> Optional[str]:
        """Return the family keyword matched by a model name, if any."""
        model_lower = model.lower()
        for family in self.families:
            if family.lower() in model_lower:
                return family
        return None

    def get_pricing(self, model: str) -> ModelPricing:
        """Get pricing for a model name.

        Unrecognized models are billed at the default family's rate.

        Args:
            model: Model identifier, e.g. "claude-opus-4-1-20250805"

        Returns:
            ModelPricing for the matched family
        """
        family = self.family_for(model)
        if family is None:
            family = self.default_family
        return self.families[family]

    def with_overrides(
        self,
        overrides: Mapping[str, ModelPricing],
        default_family: Optional[str] = None,
    ) -> "PricingTable":
        """Return a new table with some families replaced or added."""
        families: Dict[str, ModelPricing] = dict(self.families)
        families.update(overrides)
        return PricingTable(
            families=families,
            default_family=default_family or self.default_family,
        )


# Built-in rate cards
DEFAULT_PRICING_TABLE = PricingTable(
    families={
        "opus": OPUS,
        "sonnet": SONNET,
        "haiku": HAIKU,
    },
    default_family="sonnet",
)


def calculate_cost(
    model: str,
    usage: TokenCounts,
    table: PricingTable = DEFAULT_PRICING_TABLE,
) -> float:
    """Calculate total cost for model usage.

    Args:
        model: Model identifier
        usage: Token counts for the record
        table: Rate cards to price against

    Returns:
        Cost in USD
    """
    pricing = table.get_pricing(model)
    return pricing.calculate_cost(
        input_tokens=usage.input_tokens,
        output_tokens=usage.output_tokens,
        cache_write_tokens=usage.cache_write_tokens,
        cache_read_tokens=usage.cache_read_tokens,
    )
