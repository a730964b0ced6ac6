from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

import plotly.graph_objs as go

from .dataset import Dataset
from .filter_engine import apply_filters
from .filter_state import FilterState


class BaseView(ABC):
    """
    One chart of the analytics dashboard.

    A view is a thin adapter: `compute_data` asks the statistics engine for a
    result under a FilterState, `render_figure` turns that result into a
    Plotly figure. Views never cache; caching belongs to the caller.

    Subclasses set:
    - id: stable key used by the ViewRegistry
    - label: chart title shown in navigation
    """

    id: str = None
    label: str = None

    def __init__(self, dataset: Dataset, now: Optional[Any] = None):
        self.dataset = dataset
        # Reference time for relative date ranges; None means "current UTC time"
        self.now = now

    @abstractmethod
    def compute_data(self, state: FilterState) -> Any:
        """
        :param state: the active {@link FilterState}
        :return: the statistics result backing this chart
        """
        raise NotImplementedError()

    @abstractmethod
    def render_figure(self, data: Any, state: FilterState) -> go.Figure:
        """
        :param data: the result of {@link compute_data()}
        :param state: the active {@link FilterState}
        :return: the Plotly figure, or {@link empty_figure()} when there is nothing to draw
        """
        raise NotImplementedError()

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------
    def figure(self, state: FilterState) -> go.Figure:
        """compute_data + render_figure in one call."""
        state = FilterState.coerce(state)
        return self.render_figure(self.compute_data(state), state)

    def filtered_dataset(self, state: FilterState) -> Dataset:
        """The corpus projected through the filter engine at this view's `now`."""
        return apply_filters(self.dataset, state, now=self.now)

    @staticmethod
    def empty_figure(message: str) -> go.Figure:
        """Blank figure with hidden axes and `message` as its title."""
        fig = go.Figure()
        fig.update_layout(
            title=message,
            xaxis={"visible": False},
            yaxis={"visible": False},
        )
        return fig
