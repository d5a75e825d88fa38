"""Read-only lookup over subscription tiers and credit packages."""

from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from ..core.errors import ValidationError
from .packages import CREDIT_PACKAGES, CreditPackage
from .tiers import SUBSCRIPTION_CONFIGS, TierConfig


def _tier_key(tier) -> str:
    return getattr(tier, "value", tier)


@dataclass(frozen=True)
class Catalog:
    """
    Immutable tier and package tables.

    Tiers are keyed by their header value ("free", "pro", "byok"). The
    validator and the store take a catalog argument so callers can swap in a
    different set of tiers or packages without touching module state.
    """
    tier_configs: Mapping[str, TierConfig] = field(
        default_factory=lambda: MappingProxyType(
            {_tier_key(tier): config for tier, config in SUBSCRIPTION_CONFIGS.items()}
        )
    )
    credit_packages: Mapping[str, CreditPackage] = field(
        default_factory=lambda: MappingProxyType(dict(CREDIT_PACKAGES))
    )

    def has_tier(self, tier) -> bool:
        return _tier_key(tier) in self.tier_configs

    def get_tier_config(self, tier) -> TierConfig:
        """Get the config for a tier, accepting either the enum or its value."""
        config = self.tier_configs.get(_tier_key(tier))
        if config is None:
            raise ValidationError(f"Unknown subscription tier: {_tier_key(tier)}")
        return config

    def get_credit_package(self, package_key: str) -> CreditPackage:
        package = self.credit_packages.get(package_key)
        if package is None:
            valid = ", ".join(self.credit_packages)
            raise ValidationError(f"Unknown credit package '{package_key}'. Valid packages: {valid}")
        return package

    def find_credit_package(self, package_key: str) -> Optional[CreditPackage]:
        return self.credit_packages.get(package_key)

    def with_tier(self, config: TierConfig) -> "Catalog":
        """Return a copy of this catalog with one tier added or replaced."""
        tiers = dict(self.tier_configs)
        tiers[_tier_key(config.tier)] = config
        return Catalog(tier_configs=MappingProxyType(tiers), credit_packages=self.credit_packages)

    @property
    def tiers(self) -> list[TierConfig]:
        return list(self.tier_configs.values())

    @property
    def packages(self) -> list[CreditPackage]:
        return list(self.credit_packages.values())

    def describe(self) -> dict:
        """JSON-ready view of every tier and package."""
        return {
            "tiers": {
                key: {**asdict(config), "tier": key}
                for key, config in self.tier_configs.items()
            },
            "packages": {key: asdict(package) for key, package in self.credit_packages.items()},
        }


DEFAULT_CATALOG = Catalog()
