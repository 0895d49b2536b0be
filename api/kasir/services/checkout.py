import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from kasir.core.config import settings
from kasir.core.exceptions import (
    CheckoutError,
    EmptyCart,
    InsufficientStock,
    InvalidQuantity,
    LockTimeout,
    ProductNotFound,
    StoreError,
)
from kasir.db.session import unit_of_work
from kasir.db.tables import id_in_range, products, transaction_details, transactions
from kasir.schemas.sales import CheckoutItem, TransactionDetailOut, TransactionOut

logger = logging.getLogger(__name__)


def lock_products_stmt(product_ids: Iterable[int]):
    """SELECT ... FOR UPDATE over the distinct ids, in ascending id order.

    A single global lock order keeps two carts that share products from
    deadlocking on each other. Ids outside the 64-bit key range are left out
    and surface as missing products.
    """
    return (
        select(products.c.id, products.c.name, products.c.price, products.c.stock)
        .where(products.c.id.in_(sorted({pid for pid in product_ids if id_in_range(pid)})))
        .order_by(products.c.id)
        .with_for_update()
    )


def validate_items(items: Sequence[CheckoutItem]) -> None:
    if not items:
        raise EmptyCart()

    for item in items:
        quantity = getattr(item, "quantity", None)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantity(item.product_id, quantity)


def checkout(
    db: Session,
    items: Sequence[CheckoutItem],
    *,
    lock_timeout_ms: int | None = None,
) -> TransactionOut:
    """Apply a cart to inventory and record it in the ledger, all or nothing.

    Items are validated and applied in cart order, so a later line for the same
    product sees the stock left by earlier lines. Rows are locked in id order.
    Nothing is written unless every line succeeds and the commit completes.

    Raises EmptyCart, InvalidQuantity, ProductNotFound, InsufficientStock,
    LockTimeout or StoreError.
    """
    if lock_timeout_ms is None:
        lock_timeout_ms = settings.lock_timeout_ms

    try:
        validate_items(items)
        with unit_of_work(db, lock_writes=True, lock_timeout_ms=lock_timeout_ms):
            locked: dict[int, dict[str, Any]] = {
                row["id"]: dict(row)
                for row in db.execute(lock_products_stmt(item.product_id for item in items)).mappings()
            }

            total_amount = 0
            details: list[dict[str, Any]] = []

            for item in items:
                product = locked.get(item.product_id)
                if product is None:
                    raise ProductNotFound(item.product_id)

                if product["stock"] < item.quantity:
                    raise InsufficientStock(
                        item.product_id, product["stock"], item.quantity, product_name=product["name"]
                    )

                subtotal = item.quantity * product["price"]
                total_amount += subtotal

                db.execute(
                    update(products)
                    .where(products.c.id == item.product_id)
                    .values(stock=products.c.stock - item.quantity)
                )
                product["stock"] -= item.quantity

                details.append(
                    {
                        "product_id": item.product_id,
                        "product_name": product["name"],
                        "quantity": item.quantity,
                        "subtotal": subtotal,
                    }
                )

            created_at = datetime.now()
            transaction_id = db.execute(
                insert(transactions)
                .values(total_amount=total_amount, created_at=created_at)
                .returning(transactions.c.id)
            ).scalar_one()

            for detail in details:
                detail["transaction_id"] = transaction_id
            db.execute(insert(transaction_details), details)
    except CheckoutError as exc:
        logger.warning("Checkout rejected: %s", exc.message)
        raise
    except LockTimeout:
        logger.warning("Checkout gave up waiting for inventory locks after %sms", lock_timeout_ms)
        raise
    except StoreError:
        logger.exception("Checkout failed in the data store")
        raise

    logger.info(
        "Checkout committed: transaction=%s total=%s lines=%s", transaction_id, total_amount, len(details)
    )
    return TransactionOut(
        id=transaction_id,
        total_amount=total_amount,
        created_at=created_at,
        details=[TransactionDetailOut(**detail) for detail in details],
    )
