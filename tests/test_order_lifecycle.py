import pytest
from sqlalchemy import func, select

from services.order_service.models import Order
from services.order_service.service import OrderStateMachine
from services.product_service.service import ProductService
from services.seller_service.service import SellerApproval
from shared.config.database import AsyncSessionLocal, commit_or_conflict
from shared.errors import (
    Conflict,
    EmptyCart,
    Forbidden,
    InsufficientStock,
    InvalidTransition,
    NotFound,
    ValidationError,
)

from conftest import caller_for, order_payload, stock_of


async def _place(db, shop, quantity=2):
    return await OrderStateMachine.create_order(db, shop.buyer, order_payload((shop.product_id, quantity)))


async def _advance(db, shop, order_id, *statuses):
    order = None
    for status in statuses:
        order = await OrderStateMachine.transition_status(db, order_id, shop.seller, status)
    return order


async def _order_count(db) -> int:
    return (await db.execute(select(func.count(Order.id)))).scalar_one()


async def test_create_order_reserves_stock_and_prices_order(db, shop):
    order = await _place(db, shop, quantity=2)

    assert order.order_status == "pending"
    assert order.payment_status == "pending"
    assert order.order_number.startswith("ORD")
    assert order.version == 1
    assert [(item.product_id, item.quantity, item.unit_price) for item in order.items] == [
        (shop.product_id, 2, 20.0)
    ]
    assert order.items[0].seller_id == shop.seller.id
    assert order.total_amount == 40.0
    assert order.shipping_charge == 10.0
    assert order.tax_amount == 4.0
    assert order.final_amount == 54.0
    assert order.estimated_delivery is not None
    assert await stock_of(db, shop.product_id) == 8


async def test_discount_price_is_captured_and_shipping_waived(db, shop, make_user, make_product):
    seller = await make_user(role="seller")
    product = await make_product(seller, price=30.0, discount_price=25.0, stock=5)

    order = await OrderStateMachine.create_order(db, shop.buyer, order_payload((product.id, 2)))

    assert order.items[0].unit_price == 25.0
    assert order.total_amount == 50.0
    assert order.shipping_charge == 0.0
    assert order.final_amount == 55.0


async def test_insufficient_stock_leaves_nothing_behind(db, make_user, make_product):
    seller = await make_user(role="seller")
    buyer = caller_for(await make_user())
    product = await make_product(seller, stock=3)
    pid = product.id

    with pytest.raises(InsufficientStock):
        await OrderStateMachine.create_order(db, buyer, order_payload((pid, 5)))

    assert await stock_of(db, pid) == 3
    assert await _order_count(db) == 0


async def test_failing_line_rolls_back_earlier_lines(db, shop, make_user, make_product):
    other_seller = await make_user(role="seller")
    scarce = await make_product(other_seller, stock=1)
    scarce_id = scarce.id

    with pytest.raises(InsufficientStock):
        await OrderStateMachine.create_order(
            db, shop.buyer, order_payload((shop.product_id, 2), (scarce_id, 2))
        )

    assert await stock_of(db, shop.product_id) == 10
    assert await stock_of(db, scarce_id) == 1
    assert await _order_count(db) == 0


async def test_empty_cart(db, shop):
    with pytest.raises(EmptyCart):
        await OrderStateMachine.create_order(db, shop.buyer, order_payload())


async def test_unknown_product(db, shop):
    with pytest.raises(NotFound):
        await OrderStateMachine.create_order(db, shop.buyer, order_payload((shop.product_id, 1), (9999, 1)))
    assert await stock_of(db, shop.product_id) == 10


async def test_sellers_cannot_place_orders(db, shop):
    with pytest.raises(Forbidden):
        await OrderStateMachine.create_order(db, shop.seller, order_payload((shop.product_id, 1)))


async def test_suspended_sellers_products_cannot_be_ordered(db, shop):
    await SellerApproval.suspend(db, shop.admin, shop.seller.id, "Counterfeit goods")

    with pytest.raises(NotFound):
        await OrderStateMachine.create_order(db, shop.buyer, order_payload((shop.product_id, 3)))
    with pytest.raises(NotFound):
        await ProductService.get_product_by_id(db, shop.product_id)

    assert await stock_of(db, shop.product_id) == 10
    assert await _order_count(db) == 0


async def test_open_orders_can_still_be_cancelled_after_suspension(db, shop):
    order = await _place(db, shop, quantity=3)
    order_id = order.id
    await SellerApproval.suspend(db, shop.admin, shop.seller.id, "Counterfeit goods")

    await OrderStateMachine.cancel_by_buyer(db, order_id, shop.buyer, "Seller suspended")

    assert await stock_of(db, shop.product_id) == 10


async def test_buyer_cancel_releases_stock_once(db, shop):
    order = await _place(db, shop, quantity=2)
    assert await stock_of(db, shop.product_id) == 8

    cancelled = await OrderStateMachine.cancel_by_buyer(db, order.id, shop.buyer, "Customer request")

    assert cancelled.order_status == "cancelled"
    assert cancelled.cancelled_reason == "Customer request"
    assert cancelled.cancelled_at is not None
    assert await stock_of(db, shop.product_id) == 10

    with pytest.raises(Conflict):
        await OrderStateMachine.cancel_by_buyer(db, order.id, shop.buyer, "Customer request")
    assert await stock_of(db, shop.product_id) == 10


async def test_buyer_cancel_requires_reason(db, shop):
    order = await _place(db, shop)

    with pytest.raises(ValidationError):
        await OrderStateMachine.cancel_by_buyer(db, order.id, shop.buyer, "  ")

    assert (await OrderStateMachine.get_order(db, order.id, shop.buyer)).order_status == "pending"
    assert await stock_of(db, shop.product_id) == 8


async def test_buyer_cannot_cancel_once_processing(db, shop):
    order = await _place(db, shop)
    await _advance(db, shop, order.id, "processing")

    with pytest.raises(InvalidTransition):
        await OrderStateMachine.cancel_by_buyer(db, order.id, shop.buyer, "Changed my mind")


async def test_buyer_cannot_cancel_someone_elses_order(db, shop, make_user):
    order = await _place(db, shop)
    stranger = caller_for(await make_user())

    with pytest.raises(Forbidden):
        await OrderStateMachine.cancel_by_buyer(db, order.id, stranger, "Not mine")


async def test_seller_moves_order_through_lifecycle(db, shop):
    order = await _place(db, shop)

    processing = await _advance(db, shop, order.id, "processing")
    assert processing.processed_at is not None

    shipped = await _advance(db, shop, order.id, "shipped")
    assert shipped.shipped_at is not None

    delivered = await _advance(db, shop, order.id, "delivered")
    assert delivered.order_status == "delivered"
    assert delivered.delivered_at is not None
    assert delivered.version == 4


async def test_shipped_order_cannot_be_cancelled(db, shop):
    order = await _place(db, shop)
    await _advance(db, shop, order.id, "processing", "shipped")

    with pytest.raises(InvalidTransition):
        await OrderStateMachine.transition_status(db, order.id, shop.seller, "cancelled", reason="Too late")

    current = await OrderStateMachine.get_order(db, order.id, shop.seller)
    assert current.order_status == "shipped"
    assert await stock_of(db, shop.product_id) == 8


async def test_seller_cancel_from_processing_releases_stock(db, shop):
    order = await _place(db, shop, quantity=3)
    await _advance(db, shop, order.id, "processing")

    cancelled = await OrderStateMachine.transition_status(
        db, order.id, shop.seller, "cancelled", reason="Out of packaging"
    )

    assert cancelled.order_status == "cancelled"
    assert await stock_of(db, shop.product_id) == 10


async def test_cancel_transition_requires_reason(db, shop):
    order = await _place(db, shop)

    with pytest.raises(ValidationError):
        await OrderStateMachine.transition_status(db, order.id, shop.seller, "cancelled")
    assert await stock_of(db, shop.product_id) == 8


@pytest.mark.parametrize("terminal_path", [
    ("processing", "shipped", "delivered"),
    ("cancelled",),
])
async def test_terminal_states_never_change(db, shop, terminal_path):
    order = await _place(db, shop)
    for status in terminal_path:
        await OrderStateMachine.transition_status(db, order.id, shop.admin, status, reason="Closing")
    stock_after = await stock_of(db, shop.product_id)

    for status in ("pending", "processing", "shipped"):
        with pytest.raises(InvalidTransition):
            await OrderStateMachine.transition_status(db, order.id, shop.admin, status)

    assert (await OrderStateMachine.get_order(db, order.id, shop.admin)).order_status == terminal_path[-1]
    assert await stock_of(db, shop.product_id) == stock_after


async def test_repeated_status_is_a_conflict(db, shop):
    order = await _place(db, shop)
    await _advance(db, shop, order.id, "processing")

    with pytest.raises(Conflict):
        await _advance(db, shop, order.id, "processing")


async def test_expected_version_mismatch_is_a_conflict(db, shop):
    order = await _place(db, shop)
    await _advance(db, shop, order.id, "processing")

    with pytest.raises(Conflict) as exc_info:
        await OrderStateMachine.transition_status(
            db, order.id, shop.seller, "shipped", expected_version=1
        )
    assert exc_info.value.extra["current_version"] == 2


async def test_stale_concurrent_write_is_a_conflict(db, shop):
    order = await _place(db, shop)
    order_id = order.id

    async with AsyncSessionLocal() as other:
        stale = await other.get(Order, order_id)
        await _advance(db, shop, order_id, "processing")

        stale.notes = "late edit"
        with pytest.raises(Conflict):
            await commit_or_conflict(other, "order status update")


async def test_racing_cancel_on_stale_read_releases_stock_once(db, shop):
    order = await _place(db, shop, quantity=2)
    order_id = order.id

    async with AsyncSessionLocal() as other:
        stale = await other.get(Order, order_id)

        await OrderStateMachine.cancel_by_buyer(db, order_id, shop.buyer, "Changed my mind")
        assert await stock_of(db, shop.product_id) == 10

        # The second writer still sees a pending order and tries to cancel it too
        with pytest.raises(Conflict):
            await OrderStateMachine._apply_status(other, stale, "cancelled", "Duplicate request", shop.buyer)

    assert await stock_of(db, shop.product_id) == 10
    current = await OrderStateMachine.get_order(db, order_id, shop.buyer)
    assert current.cancelled_reason == "Changed my mind"


async def test_unknown_order(db, shop):
    with pytest.raises(NotFound):
        await OrderStateMachine.transition_status(db, 4242, shop.admin, "processing")


async def test_customers_cannot_transition(db, shop):
    order = await _place(db, shop)

    with pytest.raises(Forbidden):
        await OrderStateMachine.transition_status(db, order.id, shop.buyer, "processing")


async def test_seller_cannot_touch_other_sellers_order(db, shop, make_user):
    order = await _place(db, shop)
    rival = caller_for(await make_user(role="seller"))

    with pytest.raises(Forbidden):
        await OrderStateMachine.transition_status(db, order.id, rival, "processing")
    with pytest.raises(Forbidden):
        await OrderStateMachine.get_order(db, order.id, rival)


async def test_multi_seller_order_is_moved_only_by_admin(db, shop, make_user, make_product):
    other_seller = caller_for(await make_user(role="seller"))
    other_product = await make_product(other_seller, stock=4)
    order = await OrderStateMachine.create_order(
        db, shop.buyer, order_payload((shop.product_id, 1), (other_product.id, 1))
    )

    with pytest.raises(Forbidden):
        await OrderStateMachine.transition_status(db, order.id, shop.seller, "processing")

    moved = await OrderStateMachine.transition_status(db, order.id, shop.admin, "processing")
    assert moved.order_status == "processing"
    assert moved.seller_ids == {shop.seller.id, other_seller.id}


async def test_list_orders_is_scoped_by_role(db, shop, make_user, make_product):
    other_buyer = caller_for(await make_user())
    other_seller = caller_for(await make_user(role="seller"))
    other_product = await make_product(other_seller, stock=4)

    mine = await _place(db, shop)
    theirs = await OrderStateMachine.create_order(db, other_buyer, order_payload((other_product.id, 1)))

    assert [o.id for o in await OrderStateMachine.list_orders(db, shop.buyer)] == [mine.id]
    assert [o.id for o in await OrderStateMachine.list_orders(db, shop.seller)] == [mine.id]
    assert [o.id for o in await OrderStateMachine.list_orders(db, other_seller)] == [theirs.id]
    assert {o.id for o in await OrderStateMachine.list_orders(db, shop.admin)} == {mine.id, theirs.id}


async def test_stock_never_negative_across_orders(db, shop):
    first_id = (await _place(db, shop, quantity=6)).id
    with pytest.raises(InsufficientStock):
        await _place(db, shop, quantity=5)
    second_id = (await _place(db, shop, quantity=4)).id
    assert await stock_of(db, shop.product_id) == 0

    await OrderStateMachine.cancel_by_buyer(db, first_id, shop.buyer, "Duplicate")
    await OrderStateMachine.transition_status(db, second_id, shop.admin, "cancelled", reason="Fraud check")

    assert await stock_of(db, shop.product_id) == 10
