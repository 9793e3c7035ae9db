"""Resource types of the sro.openshift.io/v1beta1 API group and shared API errors."""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

GROUP = "sro.openshift.io"
VERSION = "v1beta1"
GROUP_VERSION = f"{GROUP}/{VERSION}"

VERIFICATION_TRUE = "True"
VERIFICATION_FALSE = "False"
VERIFICATION_ERROR = "Error"
VERIFICATION_UNKNOWN = "Unknown"

SPECIAL_RESOURCE_READY = "Ready"
SPECIAL_RESOURCE_PROGRESSING = "Progressing"
SPECIAL_RESOURCE_ERRORED = "Errored"


class ApiError(Exception):
    """An error reported by the cluster API."""


class NotFoundError(ApiError):
    """The requested object does not exist."""


class ForbiddenError(ApiError):
    """The caller is not allowed to perform the request."""


class ConflictError(ApiError):
    """The object was modified concurrently."""


class ConditionStatus(str, enum.Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Condition:
    type: str
    status: ConditionStatus
    reason: str = ""
    message: str = ""
    observed_generation: int = 0
    last_transition_time: datetime | None = None


def find_status_condition(conditions: list[Condition], condition_type: str) -> Condition | None:
    """Return the condition of the given type, or None."""
    return next((c for c in conditions if c.type == condition_type), None)


def set_status_condition(conditions: list[Condition], condition: Condition) -> None:
    """Add or update a condition in place.

    The transition time only changes when the status changes.
    """
    existing = find_status_condition(conditions, condition.type)
    if existing is None:
        new = copy.copy(condition)
        if new.last_transition_time is None:
            new.last_transition_time = _now()
        conditions.append(new)
        return

    if existing.status != condition.status:
        existing.status = condition.status
        existing.last_transition_time = condition.last_transition_time or _now()
    existing.reason = condition.reason
    existing.message = condition.message
    existing.observed_generation = condition.observed_generation


@dataclass
class OwnerReference:
    api_version: str = ""
    kind: str = ""
    name: str = ""
    uid: str = ""


@dataclass
class ObjectMeta:
    name: str = ""
    namespace: str = ""
    uid: str = ""
    resource_version: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    owner_references: list[OwnerReference] = field(default_factory=list)
    deletion_timestamp: datetime | None = None

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.finalizers

    def add_finalizer(self, finalizer: str) -> None:
        """Add the finalizer unless it is already present."""
        if finalizer not in self.finalizers:
            self.finalizers.append(finalizer)

    def remove_finalizer(self, finalizer: str) -> None:
        """Remove every occurrence of the finalizer."""
        self.finalizers = [f for f in self.finalizers if f != finalizer]


@dataclass
class SpecialResourceDependency:
    """A Helm chart the SpecialResource depends on."""

    chart: dict[str, Any] = field(default_factory=dict)
    set: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.chart.get("name", "")


@dataclass
class SpecialResourceSpec:
    chart: dict[str, Any] = field(default_factory=dict)
    namespace: str = ""
    force_upgrade: bool = False
    debug: bool = False
    set: dict[str, Any] = field(default_factory=dict)
    driver_container: dict[str, Any] = field(default_factory=dict)
    node_selector: dict[str, str] = field(default_factory=dict)
    dependencies: list[SpecialResourceDependency] = field(default_factory=list)
    management_state: str = ""


@dataclass
class SpecialResourceStatus:
    state: str = ""
    conditions: list[Condition] = field(default_factory=list)


@dataclass
class SpecialResource:
    """A software stack for hardware accelerators on a cluster."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: SpecialResourceSpec = field(default_factory=SpecialResourceSpec)
    status: SpecialResourceStatus = field(default_factory=SpecialResourceStatus)
    kind: str = "SpecialResource"
    api_version: str = GROUP_VERSION

    @property
    def name(self) -> str:
        return self.metadata.name


@dataclass
class SRStatus:
    name: str
    verification_status: str = ""
    status_reason: str = ""
    last_transition_time: datetime | None = None


@dataclass
class PreflightValidationSpec:
    update_image: str = ""
    debug: bool = False


@dataclass
class PreflightValidationStatus:
    sr_statuses: list[SRStatus] = field(default_factory=list)


@dataclass
class PreflightValidation:
    """Requests preflight validation of all SpecialResources against an image."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: PreflightValidationSpec = field(default_factory=PreflightValidationSpec)
    status: PreflightValidationStatus = field(default_factory=PreflightValidationStatus)
    kind: str = "PreflightValidation"
    api_version: str = GROUP_VERSION

    @property
    def name(self) -> str:
        return self.metadata.name

    def deep_copy(self) -> PreflightValidation:
        return copy.deepcopy(self)


@dataclass
class SpecialResourceModuleSelector:
    path: str
    value: str
    exclude: bool = False


@dataclass
class SpecialResourceModuleWatch:
    api_version: str
    kind: str
    path: str
    name: str = ""
    namespace: str = ""
    selector: list[SpecialResourceModuleSelector] = field(default_factory=list)


@dataclass
class SpecialResourceModuleSpec:
    chart: dict[str, Any] = field(default_factory=dict)
    namespace: str = ""
    set: dict[str, Any] = field(default_factory=dict)
    watch: list[SpecialResourceModuleWatch] = field(default_factory=list)


@dataclass
class SpecialResourceModuleVersionStatus:
    reconciled_templates: list[str] = field(default_factory=list)
    complete: bool = False


@dataclass
class SpecialResourceModuleStatus:
    versions: dict[str, SpecialResourceModuleVersionStatus] = field(default_factory=dict)


@dataclass
class SpecialResourceModule:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: SpecialResourceModuleSpec = field(default_factory=SpecialResourceModuleSpec)
    status: SpecialResourceModuleStatus = field(default_factory=SpecialResourceModuleStatus)
    kind: str = "SpecialResourceModule"
    api_version: str = GROUP_VERSION

    @property
    def name(self) -> str:
        return self.metadata.name