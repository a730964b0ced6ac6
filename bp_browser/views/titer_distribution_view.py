from __future__ import annotations

from typing import List

import plotly.graph_objects as go

from bp_browser.core.base_view import BaseView
from bp_browser.core.filter_state import FilterState
from bp_browser.core.statistics import StageDistribution, titer_distribution_by_stage


class TiterDistributionView(BaseView):
    """
    Box plot per stage drawn from precomputed nearest-rank summaries,
    so plotly does not recompute (interpolated) quartiles itself.
    """

    id = "titer_distribution"
    label = "Titer Distribution"

    def compute_data(self, state: FilterState) -> List[StageDistribution]:
        return titer_distribution_by_stage(self.filtered_dataset(state))

    def render_figure(self, data: List[StageDistribution], state: FilterState) -> go.Figure:
        rows = [row for row in (data or []) if row.count > 0]
        if not rows:
            return self.empty_figure("No titer results after filtering - adjust filters")

        fig = go.Figure(
            go.Box(
                x=[row.stage for row in rows],
                lowerfence=[row.summary.min for row in rows],
                q1=[row.summary.q1 for row in rows],
                median=[row.summary.median for row in rows],
                q3=[row.summary.q3 for row in rows],
                upperfence=[row.summary.max for row in rows],
                name="Titer",
            )
        )
        fig.update_layout(
            height=450,
            margin=dict(l=40, r=40, t=60, b=40),
            title="Titer distribution by stage",
            xaxis_title="Stage",
            yaxis_title="Titer (g/L)",
        )
        return fig
