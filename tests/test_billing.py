"""Tests for credits, credit packages, checkout and subscription management endpoints."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from conftest import auth_headers
from paperink.models.credit_package import CreditPackage
from paperink.models.subscription import Subscription
from paperink.services.credit_service import SIGNUP_CREDITS


@pytest.fixture()
def stripe_api():
    """Patch every outbound Stripe call made by the checkout service."""
    with patch("paperink.services.stripe_service.create_customer", new=AsyncMock(return_value="cus_new")) as customer, \
            patch("paperink.services.stripe_service.create_package_price", new=AsyncMock(return_value="price_pkg")) as price, \
            patch("paperink.services.stripe_service.create_checkout_session",
                  new=AsyncMock(return_value={"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"})) as session, \
            patch("paperink.services.stripe_service.modify_subscription",
                  new=AsyncMock(return_value={"id": "sub_1", "current_period_end": 1767225600})) as modify, \
            patch("paperink.services.stripe_service.create_portal_session",
                  new=AsyncMock(return_value="https://billing.stripe.test/session")) as portal:
        yield {
            "customer": customer,
            "price": price,
            "session": session,
            "modify": modify,
            "portal": portal,
        }


async def _package(db, package_id="pkg_10", stripe_price_id=None):
    db.add(CreditPackage(
        id=package_id,
        name="10 Credits",
        credits=10,
        price_amount=499,
        currency="EUR",
        stripe_price_id=stripe_price_id,
    ))
    await db.commit()


async def _active_subscription(db, user_id="user-1"):
    db.add(Subscription(
        user_id=user_id,
        stripe_subscription_id="sub_1",
        stripe_customer_id="cus_1",
        status="active",
        price_amount=499,
        current_period_end=datetime.utcnow() + timedelta(days=20),
    ))
    await db.commit()


async def test_get_credits_provisions_profile(client):
    resp = await client.get("/api/credits", headers=auth_headers())

    assert resp.status_code == 200
    body = resp.json()
    assert body["credits"] == SIGNUP_CREDITS
    assert body["has_active_subscription"] is False
    assert body["subscription"] is None


async def test_get_credits_shows_subscription(client, db):
    await _active_subscription(db)

    resp = await client.get("/api/credits", headers=auth_headers())

    body = resp.json()
    assert body["has_active_subscription"] is True
    assert body["subscription"]["status"] == "active"


async def test_list_credit_packages(client, db):
    await _package(db)
    db.add(CreditPackage(id="pkg_old", name="Old", credits=1, price_amount=99, is_active=False))
    await db.commit()

    resp = await client.get("/api/credit-packages")

    assert resp.status_code == 200
    assert [p["id"] for p in resp.json()] == ["pkg_10"]


async def test_credit_checkout_carries_package_metadata(client, db, stripe_api):
    await _package(db)

    resp = await client.post(
        "/api/create-checkout",
        json={"type": "credits", "packageId": "pkg_10"},
        headers=auth_headers(),
    )

    assert resp.status_code == 200
    assert resp.json() == {"sessionId": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}
    params = stripe_api["session"].await_args.kwargs
    assert params["mode"] == "payment"
    assert params["customer"] == "cus_new"
    assert params["line_items"] == [{"price": "price_pkg", "quantity": 1}]
    assert params["metadata"] == {"user_id": "user-1", "type": "credits", "package_id": "pkg_10", "credits": "10"}

    stored = (await db.execute(
        select(CreditPackage.stripe_price_id).where(CreditPackage.id == "pkg_10")
    )).scalar_one()
    assert stored == "price_pkg"


async def test_subscription_checkout_tags_subscription_with_user(client, stripe_api):
    resp = await client.post(
        "/api/create-checkout",
        json={"type": "subscription"},
        headers=auth_headers(),
    )

    assert resp.status_code == 200
    params = stripe_api["session"].await_args.kwargs
    assert params["mode"] == "subscription"
    assert params["line_items"] == [{"price": "price_monthly_test", "quantity": 1}]
    assert params["subscription_data"] == {"metadata": {"user_id": "user-1"}}


async def test_checkout_with_unknown_package_is_400(client, stripe_api):
    resp = await client.post(
        "/api/create-checkout",
        json={"type": "credits", "packageId": "nope"},
        headers=auth_headers(),
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid credit package"}
    stripe_api["session"].assert_not_awaited()


async def test_checkout_with_bad_type_is_400(client, stripe_api):
    resp = await client.post("/api/create-checkout", json={"type": "gift"}, headers=auth_headers())

    assert resp.status_code == 400


async def test_cancel_subscription(client, db, stripe_api):
    await _active_subscription(db)

    resp = await client.post("/api/manage-subscription", json={"action": "cancel"}, headers=auth_headers())

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["periodEnd"].startswith("2026-01-01")
    stripe_api["modify"].assert_awaited_once_with("sub_1", cancel_at_period_end=True)

    flag = (await db.execute(
        select(Subscription.cancel_at_period_end).where(Subscription.stripe_subscription_id == "sub_1")
    )).scalar_one()
    assert flag is True


async def test_portal_session(client, db, stripe_api):
    await _active_subscription(db)

    resp = await client.post(
        "/api/manage-subscription",
        json={"action": "portal", "returnUrl": "https://app.test/settings"},
        headers=auth_headers(),
    )

    assert resp.status_code == 200
    assert resp.json()["url"] == "https://billing.stripe.test/session"
    stripe_api["portal"].assert_awaited_once_with("cus_1", "https://app.test/settings")


async def test_manage_without_subscription_is_400(client, stripe_api):
    resp = await client.post("/api/manage-subscription", json={"action": "cancel"}, headers=auth_headers())

    assert resp.status_code == 400
    assert resp.json() == {"error": "No active subscription found"}
