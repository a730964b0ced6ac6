"""
Rule-based batch risk scoring and CPP setpoint recommendations.
"""

from .risk_model import compute_ml_output, extract_cpp_features, recompute_ml_outputs

__all__ = ["compute_ml_output", "extract_cpp_features", "recompute_ml_outputs"]
