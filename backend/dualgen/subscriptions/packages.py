"""Purchasable credit packages.

Pricing convention: 1 credit = $1, so credits_granted mirrors price_usd.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CreditPackage:
    """A one-time credit top-up."""
    key: str
    name: str
    price_usd: int
    completions_granted: int
    credits_granted: int
    description: str
    features: tuple[str, ...] = field(default_factory=tuple)


SMALL_CREDIT_PACKAGE = CreditPackage(
    key="small",
    name="Small Package",
    price_usd=3,
    completions_granted=50,
    credits_granted=3,
    description="50 chat completions + Dual AI Builder",
    features=("50 chat completions", "Dual AI Builder", "Perfect for light usage"),
)

MEDIUM_CREDIT_PACKAGE = CreditPackage(
    key="medium",
    name="Medium Package",
    price_usd=5,
    completions_granted=150,
    credits_granted=5,
    description="150 chat completions + Dual AI Builder",
    features=("150 chat completions", "Dual AI Builder", "Great for regular usage"),
)

LARGE_CREDIT_PACKAGE = CreditPackage(
    key="large",
    name="Large Package",
    price_usd=7,
    completions_granted=300,
    credits_granted=7,
    description="300 chat completions + Dual AI Builder",
    features=("300 chat completions", "Dual AI Builder", "Ideal for heavy usage"),
)

XLARGE_CREDIT_PACKAGE = CreditPackage(
    key="xlarge",
    name="Extra Large Package",
    price_usd=10,
    completions_granted=500,
    credits_granted=10,
    description="500 chat completions + Dual AI Builder",
    features=("500 chat completions", "Dual AI Builder", "Maximum value package"),
)

CREDIT_PACKAGES: dict[str, CreditPackage] = {
    package.key: package
    for package in (
        SMALL_CREDIT_PACKAGE,
        MEDIUM_CREDIT_PACKAGE,
        LARGE_CREDIT_PACKAGE,
        XLARGE_CREDIT_PACKAGE,
    )
}
