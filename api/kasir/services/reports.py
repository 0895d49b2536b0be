import logging
from datetime import datetime, timedelta

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from kasir.db.session import unit_of_work
from kasir.db.tables import transaction_details, transactions
from kasir.schemas.sales import BestSeller, SalesSummary

logger = logging.getLogger(__name__)


def today_window(now: datetime | None = None) -> tuple[datetime, datetime]:
    """Local midnight today to local midnight tomorrow."""
    now = now or datetime.now()
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(hours=24)


def _local_naive(value: datetime) -> datetime:
    # created_at is stored as naive local time
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def sales_summary(
    db: Session,
    start: datetime | None = None,
    end: datetime | None = None,
) -> SalesSummary:
    """Revenue, transaction count and best seller for ``[start, end)``.

    When either bound is missing the window is the current local day. An empty
    window yields zeros and no best seller.
    """
    if start is None or end is None:
        start, end = today_window()
    else:
        start, end = _local_naive(start), _local_naive(end)

    in_window = and_(transactions.c.created_at >= start, transactions.c.created_at < end)
    quantity = func.sum(transaction_details.c.quantity).label("quantity")

    with unit_of_work(db):
        totals = db.execute(
            select(
                func.coalesce(func.sum(transactions.c.total_amount), 0).label("total_revenue"),
                func.count(transactions.c.id).label("total_transactions"),
            ).where(in_window)
        ).mappings().one()

        best = db.execute(
            select(
                transaction_details.c.product_id,
                func.max(transaction_details.c.product_name).label("name"),
                quantity,
            )
            .join(transactions, transactions.c.id == transaction_details.c.transaction_id)
            .where(in_window)
            .group_by(transaction_details.c.product_id)
            .order_by(quantity.desc(), transaction_details.c.product_id)
            .limit(1)
        ).mappings().first()

    summary = SalesSummary(
        total_revenue=int(totals["total_revenue"]),
        total_transactions=int(totals["total_transactions"]),
    )
    if best is not None and best["quantity"] is not None:
        summary.best_seller = BestSeller(name=best["name"], quantity=int(best["quantity"]))

    logger.debug("Sales summary for [%s, %s): %s", start, end, summary)
    return summary
