from datetime import date, datetime, time, timedelta
from typing import NamedTuple

from fastapi import Query

from kasir.core.exceptions import InvalidReportWindow


class ReportWindow(NamedTuple):
    start: datetime | None
    end: datetime | None


def report_window(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
) -> ReportWindow:
    """Turn an inclusive date range into a half-open datetime window."""
    if start_date is None and end_date is None:
        return ReportWindow(None, None)

    if start_date is None or end_date is None:
        raise InvalidReportWindow("start_date and end_date must be given together")
    if end_date < start_date:
        raise InvalidReportWindow(
            "end_date must not be before start_date",
            details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )

    # the last representable day has no following midnight
    end = datetime.max if end_date == date.max else datetime.combine(end_date + timedelta(days=1), time.min)
    return ReportWindow(datetime.combine(start_date, time.min), end)
