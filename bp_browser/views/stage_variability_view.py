from __future__ import annotations

from typing import List

import plotly.graph_objects as go

from bp_browser.core.base_view import BaseView
from bp_browser.core.filter_state import FilterState
from bp_browser.core.statistics import StageCv, titer_cv_by_stage


class StageVariabilityView(BaseView):
    """
    Titer CV% per stage (population stddev), annotated with mean and sample count.
    """

    id = "stage_variability"
    label = "Titer CV by Stage"

    def compute_data(self, state: FilterState) -> List[StageCv]:
        return titer_cv_by_stage(self.filtered_dataset(state))

    def render_figure(self, data: List[StageCv], state: FilterState) -> go.Figure:
        if not data or all(row.count == 0 for row in data):
            return self.empty_figure("No titer results after filtering - adjust filters")

        fig = go.Figure(
            go.Bar(
                x=[row.stage for row in data],
                y=[row.cv for row in data],
                text=[f"mean {row.mean:.2f} (n={row.count})" for row in data],
                name="CV%",
            )
        )
        fig.update_layout(
            height=450,
            margin=dict(l=40, r=40, t=60, b=40),
            title="Titer variability by stage",
            xaxis_title="Stage",
            yaxis_title="CV %",
        )
        return fig
