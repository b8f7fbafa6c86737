"""Sales analytics over stored orders."""
from datetime import date, datetime, timedelta, timezone
from typing import List, Union

from errors import InvalidInput
from repositories import OrderRepository, ProductRepository, UserRepository

DateLike = Union[str, date, datetime]


def to_datetime(value: DateLike) -> datetime:
    """Coerce an ISO string, date or datetime into an aware UTC datetime."""
    if isinstance(value, str):
        try:
            # fromisoformat only accepts a trailing "Z" from Python 3.11
            if value.endswith("Z"):
                value = value[:-1] + "+00:00"
            value = datetime.fromisoformat(value)
        except ValueError as e:
            raise InvalidInput("Invalid date", value) from e
    elif not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_analytics_data(users: UserRepository, products: ProductRepository, orders: OrderRepository) -> dict:
    totals = orders.totals()
    return {
        "users": users.count(),
        "products": products.count(),
        "total_sales": totals["total_sales"],
        "total_revenue": totals["total_revenue"],
    }


def get_dates_in_range(start: datetime, end: datetime) -> List[str]:
    dates = []
    current = start
    while current <= end:
        dates.append(current.date().isoformat())
        current += timedelta(days=1)
    return dates


def get_daily_sales_data(orders: OrderRepository, start_date: DateLike, end_date: DateLike) -> List[dict]:
    """Per-day sales count and revenue for every day from start_date to end_date.

    Orders are counted when created in [start_date, end_date), but the end
    day itself is still listed. Days without orders report zero.
    """
    start = to_datetime(start_date)
    end = to_datetime(end_date)
    by_day = {row["_id"]: row for row in orders.daily_sales(start, end)}

    result = []
    for day in get_dates_in_range(start, end):
        found = by_day.get(day)
        result.append({
            "date": day,
            "sales": found["sales"] if found else 0,
            "revenue": found["revenue"] if found else 0,
        })
    return result
