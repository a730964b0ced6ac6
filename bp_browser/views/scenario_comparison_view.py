from __future__ import annotations

import dataclasses

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from bp_browser.core.base_view import BaseView
from bp_browser.core.filter_state import ALL, FilterState
from bp_browser.core.statistics import ScenarioComparison, scenario_comparison


class ScenarioComparisonView(BaseView):
    """
    Baseline vs optimized: titer CV% (left) and pass rate (right).

    The scenario filter is ignored here, otherwise one side of the
    comparison would always be empty.
    """

    id = "scenario_comparison"
    label = "Baseline vs Optimized"

    def compute_data(self, state: FilterState) -> ScenarioComparison:
        state = dataclasses.replace(FilterState.coerce(state), scenario=ALL)
        return scenario_comparison(self.filtered_dataset(state))

    def render_figure(self, data: ScenarioComparison, state: FilterState) -> go.Figure:
        if data is None or all(row.n_batches == 0 for row in data.rows()):
            return self.empty_figure("No batches after filtering - adjust filters")

        rows = data.rows()
        scenarios = [row.scenario for row in rows]

        fig = make_subplots(rows=1, cols=2, subplot_titles=("Titer CV %", "Pass rate %"))
        fig.add_bar(x=scenarios, y=[row.cv for row in rows], row=1, col=1, name="CV%")
        fig.add_bar(x=scenarios, y=[row.pass_rate for row in rows], row=1, col=2, name="Pass rate")

        fig.update_layout(
            height=450,
            margin=dict(l=40, r=40, t=60, b=40),
            title=f"Variability reduction: {data.variability_reduction:.1f}%",
            showlegend=False,
        )
        return fig
