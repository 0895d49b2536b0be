from sqlalchemy import select
from sqlalchemy.orm import Session

from kasir.core.exceptions import ProductNotFound, TransactionNotFound
from kasir.db.session import unit_of_work
from kasir.db.tables import id_in_range, products, transaction_details, transactions
from kasir.schemas.inventory import ProductOut
from kasir.schemas.sales import TransactionDetailOut, TransactionOut


def get_product(db: Session, product_id: int) -> ProductOut:
    if not id_in_range(product_id):
        raise ProductNotFound(product_id)

    with unit_of_work(db):
        row = db.execute(select(products).where(products.c.id == product_id)).mappings().first()

    if not row:
        raise ProductNotFound(product_id)
    return ProductOut(**row)


def list_products(db: Session) -> list[ProductOut]:
    with unit_of_work(db):
        rows = db.execute(select(products).order_by(products.c.name, products.c.id)).mappings().all()

    return [ProductOut(**row) for row in rows]


def get_transaction(db: Session, transaction_id: int) -> TransactionOut:
    if not id_in_range(transaction_id):
        raise TransactionNotFound(transaction_id)

    with unit_of_work(db):
        header = db.execute(
            select(transactions).where(transactions.c.id == transaction_id)
        ).mappings().first()
        if not header:
            raise TransactionNotFound(transaction_id)

        rows = db.execute(
            select(
                transaction_details.c.transaction_id,
                transaction_details.c.product_id,
                transaction_details.c.product_name,
                transaction_details.c.quantity,
                transaction_details.c.subtotal,
            )
            .where(transaction_details.c.transaction_id == transaction_id)
            .order_by(transaction_details.c.id)
        ).mappings().all()

    return TransactionOut(
        id=header["id"],
        total_amount=header["total_amount"],
        created_at=header["created_at"],
        details=[TransactionDetailOut(**row) for row in rows],
    )
