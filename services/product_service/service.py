from typing import Dict, Iterable, List, Tuple

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.seller_service.access_control import PRODUCT_CREATE, AccessControl
from shared.errors import DomainError, InsufficientStock, NotFound, ValidationError
from shared.observability import ecomm_stock_released_units_total
from shared.security.caller import Caller

from .models import Product
from .repository import ProductRepository
from .schemas import ProductCreate, StockLevel, StockLine

logger = structlog.get_logger(__name__)


def merge_quantities(lines: Iterable[Tuple[int, int]]) -> Dict[int, int]:
    """Sum quantities per product, keeping first-seen order."""
    merged: Dict[int, int] = {}
    for product_id, quantity in lines:
        if quantity < 1:
            raise ValidationError(f"Quantity for product {product_id} must be at least 1")
        merged[product_id] = merged.get(product_id, 0) + quantity
    return merged


class InventoryLedger:
    """
    Stock bookkeeping. Methods run inside the caller's transaction and never
    commit or roll back: a failed batch must be rolled back by whoever owns
    the unit of work, which is what makes a multi-line reservation
    all-or-nothing.
    """

    @staticmethod
    async def reserve_many(db: AsyncSession, quantities: Dict[int, int]) -> Dict[int, Product]:
        quantities = merge_quantities(quantities.items())
        products = await ProductRepository.lock_products(db, quantities.keys())

        # Check every line before writing anything
        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if product is None or not product.is_active:
                raise NotFound(f"Product {product_id} not found")
            if product.stock < quantity:
                raise InsufficientStock(
                    f"Insufficient stock for {product.name}",
                    product_id=product_id,
                    requested=quantity,
                    available=product.stock,
                )

        for product_id, quantity in quantities.items():
            if not await ProductRepository.decrement_stock(db, product_id, quantity):
                # Lost a race with another reservation between the check and the write
                raise InsufficientStock(
                    f"Insufficient stock for {products[product_id].name}",
                    product_id=product_id,
                    requested=quantity,
                )

        logger.info("stock_reserved", lines=len(quantities), units=sum(quantities.values()))
        return products

    @staticmethod
    async def reserve(db: AsyncSession, product_id: int, quantity: int) -> None:
        await InventoryLedger.reserve_many(db, {product_id: quantity})

    @staticmethod
    async def release_many(db: AsyncSession, quantities: Dict[int, int]) -> None:
        """Return stock. Callers guarantee this runs once per cancellation."""
        quantities = merge_quantities(quantities.items())
        released = 0
        for product_id, quantity in sorted(quantities.items()):
            if await ProductRepository.increment_stock(db, product_id, quantity):
                released += quantity
            else:
                logger.warning("stock_release_skipped", product_id=product_id, quantity=quantity)
        ecomm_stock_released_units_total.inc(released)
        logger.info("stock_released", lines=len(quantities), units=released)

    @staticmethod
    async def release(db: AsyncSession, product_id: int, quantity: int) -> None:
        await InventoryLedger.release_many(db, {product_id: quantity})


class ProductService:

    @staticmethod
    async def create_product(db: AsyncSession, caller: Caller, data: ProductCreate) -> Product:
        AccessControl.require(caller, PRODUCT_CREATE)
        await AccessControl.authorize(db, caller, caller.id, require_approval=True)

        product = Product(
            owner_id=caller.id,
            name=data.name,
            price=data.price,
            discount_price=data.discount_price,
            stock=data.stock,
            is_active=data.is_active,
        )
        product = await ProductRepository.create_product(db, product)
        logger.info("product_created", product_id=product.id, owner_id=caller.id, stock=product.stock)
        return product

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: int) -> Product:
        product = await ProductRepository.get_product_by_id(db, product_id)
        if not product:
            raise NotFound(f"Product {product_id} not found")
        return product

    @staticmethod
    async def reserve_stock(db: AsyncSession, lines: List[StockLine]) -> List[StockLevel]:
        """Standalone reservation: one committed transaction per call."""
        quantities = merge_quantities((line.product_id, line.quantity) for line in lines)
        try:
            await InventoryLedger.reserve_many(db, quantities)
            await db.commit()
        except DomainError:
            await db.rollback()
            raise
        return await ProductService._stock_levels(db, quantities)

    @staticmethod
    async def release_stock(db: AsyncSession, lines: List[StockLine]) -> List[StockLevel]:
        quantities = merge_quantities((line.product_id, line.quantity) for line in lines)
        await InventoryLedger.release_many(db, quantities)
        await db.commit()
        return await ProductService._stock_levels(db, quantities)

    @staticmethod
    async def _stock_levels(db: AsyncSession, quantities: Dict[int, int]) -> List[StockLevel]:
        levels = await ProductRepository.get_stock_levels(db, quantities.keys())
        return [StockLevel(product_id=pid, stock=stock) for pid, stock in sorted(levels.items())]
