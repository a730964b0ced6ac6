from __future__ import annotations

from typing import Any, List, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from bp_browser.core.base_view import BaseView
from bp_browser.core.dataset import Dataset
from bp_browser.core.filter_state import FilterState
from bp_browser.core.models import TITER
from bp_browser.core.statistics import ScatterPoint, parameter_outcome_scatter


class ParameterScatterView(BaseView):
    """
    Per-batch scatter: phase mean of one CPP parameter vs one CQA, coloured by scenario.
    """

    id = "parameter_scatter"
    label = "CPP vs CQA"

    def __init__(
        self,
        dataset: Dataset,
        now: Optional[Any] = None,
        phase: int = 3,
        parameter: str = "do",
        cqa_name: str = TITER,
    ):
        super().__init__(dataset, now=now)
        self.phase = phase
        self.parameter = parameter
        self.cqa_name = cqa_name

    def compute_data(self, state: FilterState) -> pd.DataFrame:
        points: List[ScatterPoint] = parameter_outcome_scatter(
            self.filtered_dataset(state),
            phase=self.phase,
            parameter=self.parameter,
            cqa_name=self.cqa_name,
        )
        return pd.DataFrame(
            [
                {"batch_id": p.batch_id, "x": p.x, "y": p.y, "stage": p.stage, "scenario": p.scenario}
                for p in points
            ],
            columns=["batch_id", "x", "y", "stage", "scenario"],
        )

    def render_figure(self, data: pd.DataFrame, state: FilterState) -> go.Figure:
        if data is None or data.empty:
            return self.empty_figure("No batches after filtering - adjust filters")

        fig = px.scatter(
            data,
            x="x",
            y="y",
            color="scenario",
            hover_data={"batch_id": True, "stage": True, "x": True, "y": True},
        )
        fig.update_layout(
            height=500,
            margin=dict(l=40, r=40, t=60, b=40),
            title=f"{self.parameter} (phase {self.phase}) vs {self.cqa_name}",
            xaxis_title=f"Mean {self.parameter}, phase {self.phase}",
            yaxis_title=self.cqa_name,
            legend_title="Scenario",
        )
        return fig
