from __future__ import annotations

from dataclasses import dataclass

from affilify.db.enums import AccountPlanEnum
from affilify.db.models import Account


# Enterprise is effectively unlimited.
PLAN_WEBSITE_LIMITS: dict[str, int] = {
    AccountPlanEnum.basic.value: 3,
    AccountPlanEnum.pro.value: 10,
    AccountPlanEnum.enterprise.value: 999,
}


def website_limit_for_plan(plan: str | None) -> int:
    return PLAN_WEBSITE_LIMITS.get((plan or "").lower(), PLAN_WEBSITE_LIMITS[AccountPlanEnum.basic.value])


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    ceiling: int
    current_usage: int


class QuotaGate:
    """
    Admission decision for website creation.

    ``admit`` only reads; the slot itself is claimed later with a conditional increment
    (see ``AccountsRepository.reserve_website_slot``) in the same transaction as the insert.
    """

    def admit(self, account: Account) -> QuotaDecision:
        ceiling = website_limit_for_plan(account.plan)
        current_usage = account.websites_created or 0
        return QuotaDecision(allowed=current_usage < ceiling, ceiling=ceiling, current_usage=current_usage)
