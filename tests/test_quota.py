from __future__ import annotations

import pytest

from affilify.db.models import Account
from affilify.db.repositories.accounts import AccountsRepository
from affilify.services.quota import QuotaGate, website_limit_for_plan


@pytest.mark.parametrize(
    ("plan", "expected"),
    [("basic", 3), ("pro", 10), ("enterprise", 999), ("PRO", 10), ("legacy-gold", 3), (None, 3)],
)
def test_website_limit_for_plan(plan, expected):
    assert website_limit_for_plan(plan) == expected


@pytest.mark.parametrize(
    ("plan", "usage", "allowed"),
    [("basic", 0, True), ("basic", 2, True), ("basic", 3, False), ("basic", 5, False), ("pro", 9, True), ("pro", 10, False)],
)
def test_admit_allows_only_below_ceiling(plan, usage, allowed):
    decision = QuotaGate().admit(Account(email="a@example.com", plan=plan, websites_created=usage))

    assert decision.allowed is allowed
    assert decision.ceiling == website_limit_for_plan(plan)
    assert decision.current_usage == usage


def test_reserve_website_slot_increments_below_ceiling(db_session, make_account):
    account = make_account(websites_created=1)
    repo = AccountsRepository(db_session)

    assert repo.reserve_website_slot(account.id, 3) == 2
    db_session.commit()

    db_session.expire_all()
    assert repo.get(account.id).websites_created == 2


def test_reserve_website_slot_at_ceiling_changes_nothing(db_session, make_account):
    account = make_account(websites_created=3)
    repo = AccountsRepository(db_session)

    assert repo.reserve_website_slot(account.id, 3) is None
    db_session.commit()

    db_session.expire_all()
    assert repo.get(account.id).websites_created == 3


def test_reserve_website_slot_never_exceeds_ceiling_across_repeated_claims(db_session, make_account):
    account = make_account(websites_created=0)
    repo = AccountsRepository(db_session)

    results = []
    for _ in range(5):
        results.append(repo.reserve_website_slot(account.id, 3))
        db_session.commit()

    assert results == [1, 2, 3, None, None]
    db_session.expire_all()
    assert repo.get(account.id).websites_created == 3


def test_reserve_website_slot_unknown_account_returns_none(db_session):
    assert AccountsRepository(db_session).reserve_website_slot("missing-account", 3) is None


def test_current_usage_reads_counter(db_session, make_account):
    account = make_account(websites_created=2)
    repo = AccountsRepository(db_session)

    assert repo.current_usage(account.id) == 2
    assert repo.current_usage("missing-account") is None
