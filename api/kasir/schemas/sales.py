from datetime import datetime

from pydantic import BaseModel, Field


class CheckoutItem(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)


class CheckoutRequest(BaseModel):
    items: list[CheckoutItem]


class TransactionDetailOut(BaseModel):
    transaction_id: int
    product_id: int
    product_name: str
    quantity: int
    subtotal: int


class TransactionOut(BaseModel):
    id: int
    total_amount: int
    created_at: datetime
    details: list[TransactionDetailOut]


class BestSeller(BaseModel):
    name: str
    quantity: int


class SalesSummary(BaseModel):
    total_revenue: int = 0
    total_transactions: int = 0
    best_seller: BestSeller | None = None
