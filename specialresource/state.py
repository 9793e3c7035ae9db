"""Status bookkeeping for SpecialResource and PreflightValidation objects."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from specialresource.api import (
    SPECIAL_RESOURCE_ERRORED,
    SPECIAL_RESOURCE_PROGRESSING,
    SPECIAL_RESOURCE_READY,
    Condition,
    ConditionStatus,
    PreflightValidation,
    SpecialResource,
    SRStatus,
    set_status_condition,
)

READY = "SpecialResourceIsReady"
PROGRESSING = "Progressing"
ERRORED = "ErrorHasOccurred"

# Reasons
SUCCESS = "Success"
HANDLING_STATE = "HandlingState"
MARKED_FOR_DELETION = "MarkedForDeletion"
CHART_FAILURE = "ChartFailure"
DEPENDENCY_CHART_FAILURE = "DependencyChartFailure"
FAILED_TO_STORE_DEPENDENCY_INFO = "FailedToStoreDependencyInfo"
FAILED_TO_CREATE_DEPENDENCY_SR = "FailedToCreateDependencySR"
FAILED_TO_DEPLOY_DEPENDENCY_CHART = "FailedToDeployDependencyChart"
FAILED_TO_DEPLOY_CHART = "FailedToDeployChart"


class StatusClient(Protocol):
    def status_update(self, obj: SpecialResource) -> None:
        """Write the status of obj to the API."""

    def status_patch(self, original: PreflightValidation, modified: PreflightValidation) -> None:
        """Patch the status of modified, computed against original."""


class StatusUpdater:
    """Sets mutually exclusive Ready/Progressing/Errored conditions and writes them back."""

    def __init__(self, kube_client: StatusClient) -> None:
        self.kube_client = kube_client

    def _set_exclusive(
        self,
        sr: SpecialResource,
        true_type: str,
        false_reason: str,
        state_label: str,
        reason: str,
        message: str,
    ) -> None:
        conditions = sr.status.conditions
        set_status_condition(
            conditions,
            Condition(type=true_type, status=ConditionStatus.TRUE, reason=reason, message=message),
        )
        order = (SPECIAL_RESOURCE_READY, SPECIAL_RESOURCE_PROGRESSING, SPECIAL_RESOURCE_ERRORED)
        others = [t for t in order if t != true_type]
        if true_type == SPECIAL_RESOURCE_ERRORED:
            others = [SPECIAL_RESOURCE_READY, SPECIAL_RESOURCE_PROGRESSING]
        for other in others:
            set_status_condition(
                conditions,
                Condition(type=other, status=ConditionStatus.FALSE, reason=false_reason),
            )
        sr.status.state = f"{state_label}: {message}"
        self.kube_client.status_update(sr)

    def set_as_progressing(self, sr: SpecialResource, reason: str, message: str) -> None:
        """Mark Progressing true, Ready and Errored false, and update the status."""
        self._set_exclusive(sr, SPECIAL_RESOURCE_PROGRESSING, PROGRESSING, "Progressing", reason, message)

    def set_as_ready(self, sr: SpecialResource, reason: str, message: str) -> None:
        """Mark Ready true, Progressing and Errored false, and update the status."""
        self._set_exclusive(sr, SPECIAL_RESOURCE_READY, READY, "Ready", reason, message)

    def set_as_errored(self, sr: SpecialResource, reason: str, message: str) -> None:
        """Mark Errored true, Ready and Progressing false, and update the status."""
        self._set_exclusive(sr, SPECIAL_RESOURCE_ERRORED, ERRORED, "Errored", reason, message)

    def set_verification_status(
        self,
        pv: PreflightValidation,
        status: SRStatus,
        verification_status: str,
        message: str,
    ) -> None:
        """Record a SpecialResource's verification result and patch the PreflightValidation."""
        original = pv.deep_copy()
        status.verification_status = verification_status
        status.status_reason = message
        status.last_transition_time = datetime.now(timezone.utc)
        self.kube_client.status_patch(original, pv)