from __future__ import annotations

from typing import Any, List, Optional

import plotly.graph_objects as go

from bp_browser.core.base_view import BaseView
from bp_browser.core.dataset import Dataset
from bp_browser.core.filter_state import FilterState
from bp_browser.core.statistics import PhaseProfilePoint, phase_parameter_profile


class PhaseProfileView(BaseView):
    """
    Mean of one CPP parameter per process phase across the filtered batches.
    """

    id = "phase_profile"
    label = "CPP by Phase"

    def __init__(self, dataset: Dataset, now: Optional[Any] = None, parameter: str = "do"):
        super().__init__(dataset, now=now)
        self.parameter = parameter

    def compute_data(self, state: FilterState) -> List[PhaseProfilePoint]:
        return phase_parameter_profile(self.filtered_dataset(state), self.parameter)

    def render_figure(self, data: List[PhaseProfilePoint], state: FilterState) -> go.Figure:
        if not data:
            return self.empty_figure("No CPP data after filtering - adjust filters")

        fig = go.Figure(
            go.Scatter(
                x=[p.phase for p in data],
                y=[p.mean for p in data],
                mode="lines+markers",
                name=self.parameter,
            )
        )
        fig.update_layout(
            height=400,
            margin=dict(l=40, r=40, t=60, b=40),
            title=f"{self.parameter} by phase",
            xaxis_title="Phase",
            yaxis_title=f"Mean {self.parameter}",
        )
        return fig
