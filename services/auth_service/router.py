from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from services.seller_service.access_control import current_caller
from shared.config.database import get_db
from shared.security import Caller

from .schemas import TokenResponse, UserCreate, UserLogin, UserResponse
from .service import AuthService

router = APIRouter(tags=["Accounts"])
public_router = APIRouter()

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "auth", "status": "running"}


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, db: AsyncSession = Depends(get_db)):
    """Open a customer account, or a seller account that waits for admin review."""
    return await AuthService.register(db, payload)


@router.post("/login", response_model=TokenResponse)
async def login(payload: UserLogin, db: AsyncSession = Depends(get_db)):
    return await AuthService.login(db, payload)


@router.get("/me", response_model=UserResponse)
async def get_me(caller: Caller = Depends(current_caller), db: AsyncSession = Depends(get_db)):
    return await AuthService.get_user_by_id(db, caller.id)
