"""Two-currency usage ledger: monthly completions first, then credits."""

import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Union

from .tiers import UNLIMITED


class Action(str, Enum):
    """Metered actions."""
    SINGLE_AI = "single-ai"
    DUAL_AI = "dual-ai"
    CREATE_PROJECT = "create-project"


CREDITS_REQUIRED = {
    Action.SINGLE_AI: 1,
    Action.DUAL_AI: 2,
    Action.CREATE_PROJECT: 0,
}


def credits_required(action: Action) -> int:
    """Credits an action costs when no completions are left."""
    return CREDITS_REQUIRED[Action(action)]


@dataclass(frozen=True)
class UsageDelta:
    """Result of spending one action against a ledger."""
    credits_used: Decimal
    completions_used: int
    new_credits_remaining: Decimal
    new_completions_used: int
    new_projects_created: int
    deliverable: bool = True


@dataclass(frozen=True)
class UsageLedger:
    """
    Snapshot of both currencies plus the project counter.

    completions_remaining may be math.inf for unlimited tiers.
    """
    credits_remaining: Decimal
    completions_used: int
    completions_remaining: Union[int, float]
    projects_created: int

    @property
    def has_completions(self) -> bool:
        return self.completions_remaining > 0

    def can_afford(self, action: Action) -> bool:
        """True if either currency covers the action."""
        return self.has_completions or self.credits_remaining >= credits_required(action)

    def spend(self, action: Action) -> UsageDelta:
        """
        Charge one action.

        Generation consumes a single completion while any remain and
        credits_required(action) credits otherwise. Project creation only bumps
        the project counter. A credit charge that would overdraw the balance is
        returned with deliverable=False and nothing deducted.
        """
        action = Action(action)
        if action == Action.CREATE_PROJECT:
            return UsageDelta(
                credits_used=Decimal(0),
                completions_used=0,
                new_credits_remaining=self.credits_remaining,
                new_completions_used=self.completions_used,
                new_projects_created=self.projects_created + 1,
            )

        if self.has_completions:
            return UsageDelta(
                credits_used=Decimal(0),
                completions_used=1,
                new_credits_remaining=self.credits_remaining,
                new_completions_used=self.completions_used + 1,
                new_projects_created=self.projects_created,
            )

        cost = Decimal(credits_required(action))
        if self.credits_remaining < cost:
            return UsageDelta(
                credits_used=Decimal(0),
                completions_used=0,
                new_credits_remaining=self.credits_remaining,
                new_completions_used=self.completions_used,
                new_projects_created=self.projects_created,
                deliverable=False,
            )

        return UsageDelta(
            credits_used=cost,
            completions_used=0,
            new_credits_remaining=self.credits_remaining - cost,
            new_completions_used=self.completions_used,
            new_projects_created=self.projects_created,
        )


def remaining_completions(monthly_completions: int, completions_used: int) -> Union[int, float]:
    """Completions left this period; math.inf when the allotment is unlimited."""
    if monthly_completions == UNLIMITED:
        return math.inf
    return max(0, monthly_completions - completions_used)
