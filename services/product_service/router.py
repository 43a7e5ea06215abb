from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from services.seller_service.access_control import current_caller
from shared.config.database import get_db
from shared.security import Caller, verify_internal_api_key
from .schemas import ProductCreate, ProductResponse, StockBatch, StockLevel
from .service import ProductService

router = APIRouter()
public_router = APIRouter()  # For any public endpoints (e.g. health check)

# Service-to-service stock movements, never exposed to end users
internal_router = APIRouter(prefix="/internal", dependencies=[Depends(verify_internal_api_key)])

@public_router.get("/health")
async def health_check():
    return {"service": "product", "status": "running"}


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product: ProductCreate,
    caller: Caller = Depends(current_caller),
    db: AsyncSession = Depends(get_db)
):
    return await ProductService.create_product(db, caller, product)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_db)
):
    return await ProductService.get_product_by_id(db, product_id)


@internal_router.post("/reserve", response_model=List[StockLevel])
async def reserve_stock(payload: StockBatch, db: AsyncSession = Depends(get_db)):
    return await ProductService.reserve_stock(db, payload.items)


@internal_router.post("/release", response_model=List[StockLevel])
async def release_stock(payload: StockBatch, db: AsyncSession = Depends(get_db)):
    return await ProductService.release_stock(db, payload.items)
