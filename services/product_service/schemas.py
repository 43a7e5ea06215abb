from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class ProductCreate(BaseModel):
    name: str = Field(min_length=1)
    price: float = Field(gt=0)
    discount_price: Optional[float] = Field(default=None, gt=0)
    stock: int = Field(default=0, ge=0)
    is_active: bool = True

    @model_validator(mode="after")
    def discount_below_price(self):
        if self.discount_price is not None and self.discount_price >= self.price:
            raise ValueError("discount_price must be lower than price")
        return self


class ProductResponse(BaseModel):
    id: int
    owner_id: int
    name: str
    price: float
    discount_price: Optional[float] = None
    stock: int
    is_active: bool

    class Config:
        from_attributes = True


class StockLine(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)


class StockBatch(BaseModel):
    items: List[StockLine] = Field(min_length=1)


class StockLevel(BaseModel):
    product_id: int
    stock: int
