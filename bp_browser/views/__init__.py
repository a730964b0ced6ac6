from bp_browser.core.view_registry import ViewRegistry

from .parameter_scatter_view import ParameterScatterView
from .phase_profile_view import PhaseProfileView
from .risk_cluster_view import RiskClusterView
from .scenario_comparison_view import ScenarioComparisonView
from .stage_variability_view import StageVariabilityView
from .titer_distribution_view import TiterDistributionView

ALL_VIEWS = [
    StageVariabilityView,
    ScenarioComparisonView,
    TiterDistributionView,
    ParameterScatterView,
    RiskClusterView,
    PhaseProfileView,
]


def default_registry() -> ViewRegistry:
    registry = ViewRegistry()
    for view_cls in ALL_VIEWS:
        registry.register(view_cls)
    return registry


__all__ = [
    "ParameterScatterView",
    "PhaseProfileView",
    "RiskClusterView",
    "ScenarioComparisonView",
    "StageVariabilityView",
    "TiterDistributionView",
    "default_registry",
]
