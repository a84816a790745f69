"""Dashboard view models."""

from typing import Optional
from pydantic import BaseModel, Field


class StatCard(BaseModel):
    """One headline figure on the dashboard."""
    title: str
    value: str
    description: Optional[str] = None
    trend: Optional[float] = Field(None, description="Month-over-month change in percent")


class ChartSeries(BaseModel):
    title: str
    labels: list[str] = Field(default_factory=list)
    values: list[float] = Field(default_factory=list)
    tick_labels: list[str] = Field(default_factory=list)


class PerformanceMetrics(BaseModel):
    """Ratios over total users; None when there are no users."""
    premium_ratio: Optional[float] = None
    match_ratio: Optional[float] = None
    revenue_per_user: Optional[float] = None
    premium_ratio_display: str = "N/A"
    match_ratio_display: str = "N/A"
    revenue_per_user_display: str = "N/A"


class DashboardStats(BaseModel):
    current_month: str
    last_month: str
    cards: list[StatCard] = Field(default_factory=list)
    metrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    user_distribution: dict[str, int] = Field(default_factory=dict)
    charts: list[ChartSeries] = Field(default_factory=list)
    profile: dict = Field(default_factory=dict, description="Public agent fields")
