from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# -------------------------------------------------------------------------
# Enumerations
# -------------------------------------------------------------------------
class Stage(str, Enum):
    """Manufacturing scale of a batch. Order here is the order of every per-stage table."""
    LAB = "Lab"
    PILOT = "Pilot"
    MANUFACTURING = "Manufacturing"


class Scenario(str, Enum):
    BASELINE = "baseline"
    OPTIMIZED = "optimized"


class ResultStatus(str, Enum):
    PASS = "Pass"
    FAIL = "Fail"
    AT_RISK = "At Risk"
    PENDING = "Pending"


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class DateRange(str, Enum):
    """
    Date window of the filter bar. Values map to a month count;
    ALL has no threshold.
    """
    THREE_MONTHS = "3months"
    SIX_MONTHS = "6months"
    ALL = "all"

    @property
    def months(self) -> Optional[int]:
        return {"3months": 3, "6months": 6}.get(self.value)


STAGES: Tuple[str, ...] = tuple(s.value for s in Stage)
SCENARIOS: Tuple[str, ...] = tuple(s.value for s in Scenario)

TITER = "Titer"
RUNNING = "Running"


# -------------------------------------------------------------------------
# Records
# -------------------------------------------------------------------------
@dataclass(frozen=True)
class Bioreactor:
    id: str
    status: str
    name: Optional[str] = None
    site: Optional[str] = None
    stage: Optional[str] = None
    scale_l: Optional[float] = None


@dataclass(frozen=True)
class Batch:
    """
    One process run.

    Fields:

    - id: unique batch identifier, e.g. "B-0001"
    - product: product code, e.g. "mAb-01"
    - stage: one of Stage
    - scenario: one of Scenario
    - start_time: ISO timestamp string or datetime
    - bioreactor_id: reference to Bioreactor.id
    - result_status: one of ResultStatus
    """
    id: str
    product: str
    stage: str
    scenario: str
    start_time: Any
    bioreactor_id: str
    result_status: str
    end_time: Any = None
    site: Optional[str] = None
    cell_line: Optional[str] = None
    media: Optional[str] = None
    recipe_version: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> Batch:
        names = cls.__dataclass_fields__.keys()
        return cls(**{k: row.get(k) for k in names})


@dataclass(frozen=True)
class CqaResult:
    batch_id: str
    cqa_name: str
    value: float
    spec_low: Optional[float] = None
    spec_high: Optional[float] = None
    in_spec: Optional[bool] = None


@dataclass(frozen=True)
class Driver:
    parameter: str
    impact: str
    contribution: float


@dataclass(frozen=True)
class MlOutput:
    """
    Model output for one batch. risk_level is taken as provided;
    the statistics layer never derives it from risk_score.
    """
    batch_id: str
    risk_score: float
    risk_level: str
    predicted_titer: Optional[float] = None
    predicted_glycan_score: Optional[float] = None
    top_drivers: Tuple[Driver, ...] = ()


@dataclass(frozen=True)
class CppPoint:
    """
    One CPP sample. `values` holds the named parameter readings
    (e.g. {"do": 41.2, "temp": 37.1}); they become columns of the CPP table.
    """
    batch_id: str
    phase: int
    values: Dict[str, float] = field(default_factory=dict)
    timestamp: Any = None

    def to_row(self) -> Dict[str, Any]:
        row: Dict[str, Any] = {"batch_id": self.batch_id, "phase": self.phase, "timestamp": self.timestamp}
        row.update(self.values)
        return row


@dataclass(frozen=True)
class RecommendedProfile:
    batch_id: str
    stage: str
    phase: int
    target_do: float
    target_temp: float
    target_feed_rate: float
    rationale: str


def drivers_to_list(drivers: Tuple[Driver, ...]) -> List[Dict[str, Any]]:
    return [
        {"parameter": d.parameter, "impact": d.impact, "contribution": d.contribution}
        for d in drivers
    ]
