from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from intune.models import CategoryCatalog, Device


class Outcome(str, Enum):
    UPDATED = "Updated"
    ALREADY_CORRECT = "AlreadyCorrect"
    SKIPPED = "Skipped"
    ERRORED = "Errored"


class SkipReason(str, Enum):
    NO_PRIMARY_USER = "NoPrimaryUser"
    NO_DEPARTMENT = "NoDepartment"
    NO_MATCHING_CATEGORY = "NoMatchingCategory"


class DecisionKind(str, Enum):
    NO_PRIMARY_USER = "NoPrimaryUser"
    NO_DEPARTMENT = "NoDepartment"
    NO_MATCHING_CATEGORY = "NoMatchingCategory"
    ALREADY_CORRECT = "AlreadyCorrect"
    UPDATE_REQUIRED = "UpdateRequired"


SKIP_REASONS = {
    DecisionKind.NO_PRIMARY_USER: SkipReason.NO_PRIMARY_USER,
    DecisionKind.NO_DEPARTMENT: SkipReason.NO_DEPARTMENT,
    DecisionKind.NO_MATCHING_CATEGORY: SkipReason.NO_MATCHING_CATEGORY,
}


class Decision(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: DecisionKind
    department: Optional[str] = None
    category_id: Optional[str] = None

    @property
    def skip_reason(self) -> Optional[SkipReason]:
        return SKIP_REASONS.get(self.kind)


class DeviceOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    device_id: str
    device_name: Optional[str] = None
    outcome: Outcome
    skip_reason: Optional[SkipReason] = None
    previous_category: Optional[str] = None
    target_category: Optional[str] = None
    simulated: bool = False
    detail: str = ""


class RunSummary(BaseModel):
    """Counters for one run. `record` returns a new summary."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    total: int = Field(default=0, alias="Total")
    already_correct: int = Field(default=0, alias="AlreadyCorrect")
    updated: int = Field(default=0, alias="Updated")
    skipped: int = Field(default=0, alias="Skipped")
    errors: int = Field(default=0, alias="Errors")
    simulation: bool = Field(default=False, alias="SimulationMode")
    skipped_by_reason: Dict[str, int] = Field(default_factory=dict, alias="SkippedByReason")

    def record(self, result: DeviceOutcome) -> "RunSummary":
        update: Dict[str, object] = {"total": self.total + 1}
        if result.outcome is Outcome.UPDATED:
            update["updated"] = self.updated + 1
        elif result.outcome is Outcome.ALREADY_CORRECT:
            update["already_correct"] = self.already_correct + 1
        elif result.outcome is Outcome.SKIPPED:
            update["skipped"] = self.skipped + 1
            if result.skip_reason is not None:
                reasons = dict(self.skipped_by_reason)
                key = result.skip_reason.value
                reasons[key] = reasons.get(key, 0) + 1
                update["skipped_by_reason"] = reasons
        else:
            update["errors"] = self.errors + 1
        return self.model_copy(update=update)

    def as_report(self) -> Dict[str, object]:
        return self.model_dump(by_alias=True)


class PipelineState(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    simulate: bool = False
    operating_system: str = "Windows"
    no_category_labels: List[str] = Field(default_factory=lambda: ["Unassigned", "Unknown"])
    authenticated: bool = False
    catalog: Optional[CategoryCatalog] = None
    devices: List[Device] = Field(default_factory=list)
    outcomes: List[DeviceOutcome] = Field(default_factory=list)
    summary: Optional[RunSummary] = None
