from __future__ import annotations

import plotly.graph_objects as go

from bp_browser.core.base_view import BaseView
from bp_browser.core.filter_state import FilterState
from bp_browser.core.statistics import RiskClusters, risk_clusters


class RiskClusterView(BaseView):
    id = "risk_clusters"
    label = "Risk Clusters"

    def compute_data(self, state: FilterState) -> RiskClusters:
        return risk_clusters(self.filtered_dataset(state))

    def render_figure(self, data: RiskClusters, state: FilterState) -> go.Figure:
        if data is None or data.total == 0:
            return self.empty_figure("No ML outputs after filtering - adjust filters")

        fig = go.Figure(
            go.Bar(
                x=["stable", "variable"],
                y=[data.stable, data.variable],
                name="Batches",
            )
        )
        fig.update_layout(
            height=400,
            margin=dict(l=40, r=40, t=60, b=40),
            title=f"Risk clusters (threshold {data.threshold:g})",
            yaxis_title="# batches",
        )
        return fig
