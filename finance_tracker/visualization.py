"""Plotly visualisation helpers for the finance tracker.

Each function turns a calculator result into a Plotly figure that
Streamlit renders with ``st.plotly_chart``.  Empty inputs produce an empty
figure titled "No data to display" instead of raising.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .models import BudgetBreakdown, MonthlySnapshot
from .projections import projection_frame


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_budget_bucket_chart(breakdown: BudgetBreakdown, title: str | None = None) -> go.Figure:
    """Grouped bar chart of budgeted versus spent per bucket.

    Parameters
    ----------
    breakdown : BudgetBreakdown
        Result of the 50/30/20 calculation.
    title : str, optional
        Chart title.  Defaults to the breakdown month.

    Returns
    -------
    plotly.graph_objects.Figure
        Bar chart with one group per bucket.
    """
    buckets = breakdown.buckets
    if not breakdown.total_income and not any(bucket.spent for bucket in buckets.values()):
        return _empty_figure()
    names = [name.capitalize() for name in buckets]
    fig = go.Figure()
    fig.add_trace(go.Bar(name="Budgeted", x=names, y=[b.budgeted for b in buckets.values()]))
    fig.add_trace(go.Bar(name="Spent", x=names, y=[b.spent for b in buckets.values()]))
    fig.update_layout(
        barmode="group",
        title=title or f"Budget for {breakdown.month}",
        xaxis_title="Bucket",
        yaxis_title="Amount (€)",
    )
    return fig


def create_projection_chart(
    snapshots: Iterable[MonthlySnapshot],
    account_names: Optional[Dict[str, str]] = None,
    title: str | None = None,
) -> go.Figure:
    """Line chart of the projected total balance and each account balance."""
    df = projection_frame(snapshots, account_names)
    if df.empty:
        return _empty_figure()
    value_columns = [c for c in df.columns if c not in ("Month", "Income", "Expenses", "Net Change")]
    long = df.melt(id_vars="Month", value_vars=value_columns, var_name="Series", value_name="Balance")
    fig = px.line(long, x="Month", y="Balance", color="Series")
    fig.update_layout(
        title=title or "Projected balances",
        xaxis_title="Month",
        yaxis_title="Balance (€)",
    )
    return fig


def create_cash_flow_chart(snapshots: Iterable[MonthlySnapshot], title: str | None = None) -> go.Figure:
    """Bar chart of projected income and expenses per month."""
    df = projection_frame(snapshots)
    if df.empty:
        return _empty_figure()
    fig = go.Figure()
    fig.add_trace(go.Bar(name="Income", x=df["Month"], y=df["Income"]))
    fig.add_trace(go.Bar(name="Expenses", x=df["Month"], y=-df["Expenses"]))
    fig.update_layout(barmode="relative", title=title or "Projected cash flow", yaxis_title="Amount (€)")
    return fig


def create_goal_progress_chart(goals: Sequence[Mapping[str, Any]], title: str | None = None) -> go.Figure:
    """Horizontal bar chart of savings goal progress in percent.

    ``goals`` are the dictionaries returned by
    :func:`finance_tracker.service.goals_with_progress`.
    """
    if not goals:
        return _empty_figure()
    df = pd.DataFrame({
        "Goal": [goal["name"] for goal in goals],
        "Progress": np.clip([float(goal.get("progress", 0.0)) for goal in goals], 0.0, 100.0),
    })
    fig = px.bar(df, x="Progress", y="Goal", orientation="h", range_x=[0, 100])
    fig.update_layout(title=title or "Savings goal progress", xaxis_title="Progress (%)")
    return fig


def create_category_budget_chart(table: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Bar chart of budgeted versus spent per canonical category."""
    if table.empty:
        return _empty_figure()
    long = table.melt(id_vars="Category", value_vars=["Budgeted", "Spent"], var_name="Kind", value_name="Amount")
    fig = px.bar(long, x="Category", y="Amount", color="Kind", barmode="group")
    fig.update_layout(title=title or "Budget per category", yaxis_title="Amount (€)")
    return fig
