import pytest

from services.order_service.service import OrderStateMachine
from services.product_service.schemas import ProductCreate
from services.product_service.service import ProductService
from services.revenue_service.service import RevenueAggregator
from services.seller_service.access_control import (
    CAPABILITIES,
    ORDER_CREATE,
    PLATFORM_STATS,
    SELLER_REVIEW,
    AccessControl,
)
from services.seller_service.service import SellerApproval
from shared.errors import Forbidden
from shared.security import Caller

from conftest import caller_for, order_payload


def test_capabilities_by_role():
    AccessControl.require(Caller(id=1, role="customer"), ORDER_CREATE)
    AccessControl.require(Caller(id=1, role="admin"), SELLER_REVIEW)

    with pytest.raises(Forbidden):
        AccessControl.require(Caller(id=1, role="seller"), ORDER_CREATE)
    with pytest.raises(Forbidden):
        AccessControl.require(Caller(id=1, role="seller"), PLATFORM_STATS)
    with pytest.raises(Forbidden):
        AccessControl.require(Caller(id=1, role="intruder"), ORDER_CREATE)


def test_customers_hold_no_seller_capabilities():
    assert CAPABILITIES["customer"] == {"order:create", "order:read", "order:cancel"}


async def test_admin_always_authorized(db):
    await AccessControl.authorize(db, Caller(id=1, role="admin"), 999, require_approval=True)


async def test_customer_only_owns_own_resources(db, make_user):
    customer = caller_for(await make_user())

    await AccessControl.authorize(db, customer, customer.id)
    with pytest.raises(Forbidden):
        await AccessControl.authorize(db, customer, customer.id + 1)
    with pytest.raises(Forbidden):
        await AccessControl.authorize(db, customer, customer.id, require_approval=True)


async def test_approval_is_checked_before_ownership(db, make_user):
    seller = caller_for(await make_user(role="seller", approval_status="rejected", rejection_reason="Expired licence"))

    with pytest.raises(Forbidden) as exc_info:
        await AccessControl.authorize(db, seller, seller.id, require_approval=True)

    assert exc_info.value.extra["status"] == "rejected"
    assert exc_info.value.extra["reason"] == "Expired licence"


async def test_pending_seller_is_refused_every_gated_operation(db, shop, make_user):
    order = await OrderStateMachine.create_order(db, shop.buyer, order_payload((shop.product_id, 1)))
    order_id = order.id

    # The seller owns the order's line but has been sent back to review
    await SellerApproval.suspend(db, shop.admin, shop.seller.id, "Document check")
    await SellerApproval.resubmit(db, shop.seller)
    assert (await SellerApproval.check_approval(db, shop.seller.id)).status == "pending"

    with pytest.raises(Forbidden):
        await ProductService.create_product(db, shop.seller, ProductCreate(name="Lamp", price=15.0, stock=3))
    with pytest.raises(Forbidden):
        await OrderStateMachine.transition_status(db, order_id, shop.seller, "processing")
    with pytest.raises(Forbidden):
        await OrderStateMachine.update_payment_status(db, order_id, shop.seller, "failed")
    with pytest.raises(Forbidden):
        await OrderStateMachine.get_order(db, order_id, shop.seller)
    with pytest.raises(Forbidden):
        await OrderStateMachine.list_orders(db, shop.seller)
    with pytest.raises(Forbidden):
        await RevenueAggregator.seller_dashboard(db, shop.seller)

    assert (await OrderStateMachine.get_order(db, order_id, shop.admin)).order_status == "pending"


async def test_approved_seller_creates_products(db, make_user):
    seller = caller_for(await make_user(role="seller"))

    product = await ProductService.create_product(
        db, seller, ProductCreate(name="Lamp", price=15.0, discount_price=12.0, stock=3)
    )

    assert product.owner_id == seller.id
    assert product.effective_price == 12.0


async def test_customers_cannot_create_products(db, make_user):
    customer = caller_for(await make_user())

    with pytest.raises(Forbidden):
        await ProductService.create_product(db, customer, ProductCreate(name="Lamp", price=15.0))
