"""Dashboard statistics computed from counters already on the agent record."""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from agent_panel.models.agent import COUNTER_FIELDS, AgentRecord, ChartPoint
from agent_panel.models.dashboard import ChartSeries, DashboardStats, PerformanceMetrics, StatCard

Number = Union[int, float]

NOT_AVAILABLE = "N/A"
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def _round_half_up(value: Number, places: int = 0) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)


def group_indian(digits: str) -> str:
    """Indian digit grouping: last three digits, then pairs (25,00,000)."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_inr(amount: Optional[Number]) -> str:
    """Rupees with Indian grouping and no fraction digits."""
    if amount is None:
        return NOT_AVAILABLE
    rounded = int(_round_half_up(amount))
    sign = "-" if rounded < 0 else ""
    return f"{sign}₹{group_indian(str(abs(rounded)))}"


def format_lakh(amount: Number) -> str:
    """Chart tick label in lakhs (₹25L, ₹3.2L)."""
    lakhs = _round_half_up(Decimal(str(amount)) / Decimal(100000), 2).normalize()
    return f"₹{lakhs:f}L"


def format_count(value: Optional[int]) -> str:
    return f"{value or 0:,}"


def percentage_change(current: Number, previous: Number) -> Optional[float]:
    """Month-over-month change in percent, one decimal; None without a baseline."""
    if not previous:
        return None
    return float(_round_half_up((current - previous) / previous * 100, 1))


def ratio_percent(part: Number, total: Number) -> Optional[float]:
    if not total:
        return None
    return float(_round_half_up(part / total * 100, 1))


def format_percent(value: Optional[float]) -> str:
    return NOT_AVAILABLE if value is None else f"{value:.1f}%"


def month_labels(today: Optional[date] = None) -> tuple[str, str]:
    """Names of the current and the previous month."""
    today = today or date.today()
    return MONTH_NAMES[today.month - 1], MONTH_NAMES[(today.month - 2) % 12]


def _series(title: str, points: list[ChartPoint], currency: bool = False) -> ChartSeries:
    return ChartSeries(
        title=title,
        labels=[point.month for point in points],
        values=[point.value for point in points],
        tick_labels=[format_lakh(point.value) if currency else format_count(int(point.value)) for point in points],
    )


def build_dashboard(record: AgentRecord, today: Optional[date] = None) -> DashboardStats:
    current_month, last_month = month_labels(today)

    revenue_trend = percentage_change(record.last_month_revenue, record.previous_month_revenue)
    user_trend = percentage_change(record.active_users, record.last_month_active_users)

    cards = [
        StatCard(title="Total Users", value=format_count(record.total_users), trend=user_trend,
                 description="Total profiles created"),
        StatCard(title="Active Users", value=format_count(record.active_users),
                 description="Currently active profiles"),
        StatCard(title="Revenue", value=format_inr(record.last_month_revenue), trend=revenue_trend,
                 description=f"Revenue for {last_month}"),
        StatCard(title="Total Revenue", value=format_inr(record.total_revenue),
                 description="Total earnings till date"),
        StatCard(title="Successful Matches", value=format_count(record.successful_matches),
                 description="Total successful marriages"),
        StatCard(title="Premium Users", value=format_count(record.premium_users),
                 description="Active premium subscriptions"),
    ]

    premium_ratio = ratio_percent(record.premium_users, record.total_users)
    match_ratio = ratio_percent(record.successful_matches, record.total_users)
    revenue_per_user = (
        float(_round_half_up(record.total_revenue / record.total_users)) if record.total_users else None
    )
    metrics = PerformanceMetrics(
        premium_ratio=premium_ratio,
        match_ratio=match_ratio,
        revenue_per_user=revenue_per_user,
        premium_ratio_display=format_percent(premium_ratio),
        match_ratio_display=format_percent(match_ratio),
        revenue_per_user_display=format_inr(revenue_per_user),
    )

    profile = record.public_fields()
    for key in COUNTER_FIELDS:
        profile.pop(key, None)

    return DashboardStats(
        current_month=current_month,
        last_month=last_month,
        cards=cards,
        metrics=metrics,
        user_distribution={
            "Premium Users": record.premium_users,
            "Regular Users": max(record.total_users - record.premium_users, 0),
        },
        charts=[
            _series("Revenue Trend", record.revenue_history, currency=True),
            _series("Successful Matches", record.match_history),
        ],
        profile=profile,
    )
