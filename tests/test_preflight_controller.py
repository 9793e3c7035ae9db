import copy
from datetime import datetime, timedelta, timezone

import pytest

from specialresource.api import (
    ApiError,
    NotFoundError,
    ObjectMeta,
    PreflightValidation,
    PreflightValidationSpec,
    PreflightValidationStatus,
    SpecialResource,
    SRStatus,
)
from specialresource.preflight_controller import (
    PreflightValidationReconciler,
    ReconcileResult,
    Request,
)
from specialresource.state import StatusUpdater

IMAGE = "quay.io/example/release@sha256:abc"


class FakeKube:
    def __init__(self, pv=None, srs=(), get_error=None, list_error=None):
        self.pv = pv
        self.srs = list(srs)
        self.get_error = get_error
        self.list_error = list_error
        self.patches = 0

    def get_preflight_validation(self, name, namespace):
        if self.get_error:
            raise self.get_error
        if self.pv is None or self.pv.name != name:
            raise NotFoundError(name)
        return copy.deepcopy(self.pv)

    def list_special_resources(self):
        if self.list_error:
            raise self.list_error
        return list(self.srs)

    def status_patch(self, original, modified):
        self.patches += 1
        self.pv = copy.deepcopy(modified)

    def status_update(self, obj):
        raise AssertionError("not expected")


class FakePreflight:
    def __init__(self, results=None, runtime_error=None):
        self.results = results or {}
        self.runtime_error = runtime_error
        self.checked = []
        self.images = []

    def prepare_runtime_info(self, image):
        self.images.append(image)
        if self.runtime_error:
            raise self.runtime_error
        return {"image": image}

    def preflight_upgrade_check(self, sr, run_info):
        self.checked.append(sr.name)
        result = self.results.get(sr.name, (True, "ok"))
        if isinstance(result, Exception):
            raise result
        return result


def make_pv(statuses=()):
    return PreflightValidation(
        metadata=ObjectMeta(name="pv"),
        spec=PreflightValidationSpec(update_image=IMAGE),
        status=PreflightValidationStatus(sr_statuses=list(statuses)),
    )


def make_sr(name, deleted=False):
    return SpecialResource(
        metadata=ObjectMeta(
            name=name, deletion_timestamp=datetime.now(timezone.utc) if deleted else None
        )
    )


def reconciler(kube, preflight):
    return PreflightValidationReconciler(kube, preflight, StatusUpdater(kube))


def statuses(kube):
    return {s.name: s.verification_status for s in kube.pv.status.sr_statuses}


def test_not_found_is_success():
    kube = FakeKube()
    result = reconciler(kube, FakePreflight()).reconcile(Request("pv"))
    assert result == ReconcileResult()


def test_get_error_raised():
    kube = FakeKube(get_error=ApiError("down"))
    with pytest.raises(ApiError, match="down"):
        reconciler(kube, FakePreflight()).reconcile(Request("pv"))


def test_deleted_pv_not_reconciled():
    pv = make_pv()
    pv.metadata.deletion_timestamp = datetime.now(timezone.utc)
    kube = FakeKube(pv, [make_sr("a")])
    preflight = FakePreflight()
    result = reconciler(kube, preflight).reconcile(Request("pv"))
    assert result == ReconcileResult()
    assert preflight.images == []


def test_all_verified_completes():
    kube = FakeKube(make_pv(), [make_sr("a"), make_sr("b")])
    preflight = FakePreflight()
    result = reconciler(kube, preflight).reconcile(Request("pv"))
    assert result == ReconcileResult()
    assert preflight.images == [IMAGE]
    assert statuses(kube) == {"a": "True", "b": "True"}


def test_failed_verification_requeues():
    kube = FakeKube(make_pv(), [make_sr("a"), make_sr("b")])
    preflight = FakePreflight({"b": (False, "kernel mismatch")})
    result = reconciler(kube, preflight).reconcile(Request("pv"))
    assert result.requeue_after == timedelta(seconds=60)
    assert statuses(kube) == {"a": "True", "b": "False"}
    b = next(s for s in kube.pv.status.sr_statuses if s.name == "b")
    assert b.status_reason == "kernel mismatch"
    assert b.last_transition_time is not None


def test_check_error_marks_error():
    kube = FakeKube(make_pv(), [make_sr("a")])
    preflight = FakePreflight({"a": ValueError("broken")})
    result = reconciler(kube, preflight).reconcile(Request("pv"))
    assert result.requeue_after == timedelta(seconds=60)
    assert statuses(kube) == {"a": "Error"}


def test_already_verified_skipped():
    kube = FakeKube(make_pv([SRStatus(name="a", verification_status="True")]),
                    [make_sr("a"), make_sr("b")])
    preflight = FakePreflight()
    result = reconciler(kube, preflight).reconcile(Request("pv"))
    assert preflight.checked == ["b"]
    assert result == ReconcileResult()


def test_deleted_sr_skipped_and_left_unknown():
    kube = FakeKube(make_pv(), [make_sr("a", deleted=True)])
    preflight = FakePreflight()
    result = reconciler(kube, preflight).reconcile(Request("pv"))
    assert preflight.checked == []
    assert statuses(kube) == {"a": "Unknown"}
    assert result.requeue_after == timedelta(seconds=60)


def test_runtime_info_failure_raises():
    kube = FakeKube(make_pv(), [make_sr("a")])
    preflight = FakePreflight(runtime_error=ValueError("no image"))
    with pytest.raises(RuntimeError, match="failed to get runtime info for image"):
        reconciler(kube, preflight).reconcile(Request("pv"))
    assert kube.patches == 0


def test_list_failure_raises():
    kube = FakeKube(make_pv(), list_error=ApiError("nope"))
    with pytest.raises(ApiError, match="failed to get list of all SRs"):
        reconciler(kube, FakePreflight()).reconcile(Request("pv"))


def test_no_special_resources_completes():
    kube = FakeKube(make_pv())
    result = reconciler(kube, FakePreflight()).reconcile(Request("pv"))
    assert result == ReconcileResult()
    assert kube.patches == 0