"""Reconciliation of PreflightValidation objects."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Protocol

from specialresource.api import (
    VERIFICATION_ERROR,
    VERIFICATION_FALSE,
    VERIFICATION_TRUE,
    VERIFICATION_UNKNOWN,
    ApiError,
    NotFoundError,
    PreflightValidation,
    SpecialResource,
    SRStatus,
)
from specialresource.state import StatusUpdater

RECONCILE_REQUEUE = timedelta(seconds=60)
VERIFICATION_STATUS_REASON_UNKNOWN = "Verification has not started yet"

log = logging.getLogger(__name__)


class PreflightClient(Protocol):
    def get_preflight_validation(self, name: str, namespace: str) -> PreflightValidation: ...

    def list_special_resources(self) -> Iterable[SpecialResource]: ...


class PreflightAPI(Protocol):
    def prepare_runtime_info(self, image: str) -> Any: ...

    def preflight_upgrade_check(self, sr: SpecialResource, run_info: Any) -> tuple[bool, str]:
        """Return whether sr is verified against run_info, with a message."""


@dataclass(frozen=True)
class Request:
    name: str
    namespace: str = ""


@dataclass(frozen=True)
class ReconcileResult:
    requeue: bool = False
    requeue_after: timedelta | None = None


class PreflightValidationReconciler:
    """Verifies every SpecialResource against the image of a PreflightValidation."""

    def __init__(
        self,
        kube_client: PreflightClient,
        preflight_api: PreflightAPI,
        status_updater: StatusUpdater,
    ) -> None:
        self.kube_client = kube_client
        self.preflight_api = preflight_api
        self.status_updater = status_updater

    def reconcile(self, request: Request) -> ReconcileResult:
        log.info("Start PreflightValidation Reconciliation")
        try:
            pv = self.kube_client.get_preflight_validation(request.name, request.namespace)
        except NotFoundError:
            log.info(
                "PreflightValidation reconcile success. Reconciliation object not found, "
                "probably deleted. Not reconciling"
            )
            return ReconcileResult()
        except Exception:
            log.exception("preflight validation reconcile failed to find object")
            raise

        if pv.metadata.deletion_timestamp is not None:
            log.info("PreflightValidation reconcile success. CR is marked for deletion, not reconciling")
            return ReconcileResult()

        try:
            completed = self._run_preflight_validation(pv)
        except Exception:
            log.exception("runPreflightValidation failed")
            raise

        if completed:
            log.info("PreflightValidation reconciliation success")
            return ReconcileResult()
        log.info("PreflightValidation reconciliation requeue")
        return ReconcileResult(requeue_after=RECONCILE_REQUEUE)

    def _run_preflight_validation(self, pv: PreflightValidation) -> bool:
        previous = {s.name: s.verification_status for s in pv.status.sr_statuses}

        try:
            run_info = self.preflight_api.prepare_runtime_info(pv.spec.update_image)
        except Exception as err:
            raise RuntimeError(
                f"failed to get runtime info for image {pv.spec.update_image} "
                f"in runPreflightValidation: {err}"
            ) from err

        try:
            special_resources = list(self.kube_client.list_special_resources())
        except ApiError as err:
            raise ApiError(f"failed to get list of all SRs, {err}") from err

        try:
            self._preset_statuses(special_resources, pv)
        except Exception as err:
            raise RuntimeError(f"failed to preset statuses for CRs: {err}") from err

        for sr in special_resources:
            if sr.metadata.deletion_timestamp is not None:
                log.info("CR is marked for deletion, skipping preflight validation")
                continue
            if previous.get(sr.name) == VERIFICATION_TRUE:
                continue

            log.info("start preflight validation for %s", sr.name)
            error: Exception | None = None
            try:
                verified, message = self.preflight_api.preflight_upgrade_check(sr, run_info)
            except Exception as err:
                verified, message, error = False, str(err), err
            log.info(
                "preflight validation result for %s: verified=%s errored=%s",
                sr.name, verified, error is not None,
            )
            self._update_preflight_status(pv, sr.name, message, verified, error)

        return self._check_preflight_completion(pv.name, pv.metadata.namespace)

    def _update_preflight_status(
        self,
        pv: PreflightValidation,
        cr_name: str,
        message: str,
        verified: bool,
        error: Exception | None,
    ) -> None:
        if error is not None:
            verification_status = VERIFICATION_ERROR
        elif verified:
            verification_status = VERIFICATION_TRUE
        else:
            verification_status = VERIFICATION_FALSE
        sr_status = self._get_preflight_sr_status(pv, cr_name)
        try:
            self.status_updater.set_verification_status(pv, sr_status, verification_status, message)
        except Exception:
            log.warning("failed to update the status of SR CR %s in preflight", cr_name)

    def _preset_statuses(
        self, special_resources: Iterable[SpecialResource], pv: PreflightValidation
    ) -> None:
        for sr in special_resources:
            sr_status = self._get_preflight_sr_status(pv, sr.name)
            if sr_status.verification_status:
                continue
            try:
                self.status_updater.set_verification_status(
                    pv, sr_status, VERIFICATION_UNKNOWN, VERIFICATION_STATUS_REASON_UNKNOWN
                )
            except Exception as err:
                raise RuntimeError(f"failed to set SR {sr.name} status to unknown: {err}") from err

    def _check_preflight_completion(self, name: str, namespace: str) -> bool:
        try:
            pv = self.kube_client.get_preflight_validation(name, namespace)
        except ApiError as err:
            raise ApiError(
                f"failed to get preflight validation object in checkPreflightCompletion: {err}"
            ) from err

        for sr_status in pv.status.sr_statuses:
            if sr_status.verification_status != VERIFICATION_TRUE:
                log.info(
                    "at least one CR is not verified yet: %s status %s",
                    sr_status.name, sr_status.verification_status,
                )
                return False
        return True

    @staticmethod
    def _get_preflight_sr_status(pv: PreflightValidation, cr_name: str) -> SRStatus:
        for status in pv.status.sr_statuses:
            if status.name == cr_name:
                return status
        status = SRStatus(name=cr_name)
        pv.status.sr_statuses.append(status)
        return status