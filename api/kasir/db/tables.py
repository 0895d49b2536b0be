from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
)

metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(250), nullable=False),
    Column("price", Integer, nullable=False),
    Column("stock", Integer, nullable=False, default=0),
    CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
)

transactions = Table(
    "transactions",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("total_amount", Integer, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Index("ix_transactions_created_at", "created_at"),
)

# Rows are immutable snapshots; product_name and subtotal do not follow later catalog changes.
transaction_details = Table(
    "transaction_details",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("transaction_id", Integer, ForeignKey("transactions.id"), nullable=False),
    Column("product_id", Integer, ForeignKey("products.id"), nullable=False),
    Column("product_name", String(250), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("subtotal", Integer, nullable=False),
    CheckConstraint("quantity > 0", name="ck_transaction_details_quantity_positive"),
    Index("ix_transaction_details_transaction_id", "transaction_id"),
)

# Integer primary keys are signed 64-bit on every supported store.
MIN_ID = -(2**63)
MAX_ID = 2**63 - 1


def id_in_range(value: int) -> bool:
    return MIN_ID <= value <= MAX_ID
