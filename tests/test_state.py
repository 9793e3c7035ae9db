import copy

import pytest

from specialresource.api import (
    SPECIAL_RESOURCE_ERRORED,
    SPECIAL_RESOURCE_PROGRESSING,
    SPECIAL_RESOURCE_READY,
    ApiError,
    ConditionStatus,
    ObjectMeta,
    PreflightValidation,
    SpecialResource,
    SRStatus,
    find_status_condition,
)
from specialresource.state import StatusUpdater


class FakeClient:
    def __init__(self, error=None):
        self.updates = []
        self.patches = []
        self.error = error

    def status_update(self, obj):
        self.updates.append(copy.deepcopy(obj))
        if self.error:
            raise self.error

    def status_patch(self, original, modified):
        self.patches.append((original, copy.deepcopy(modified)))
        if self.error:
            raise self.error


def _sr():
    return SpecialResource(metadata=ObjectMeta(name="sr-name", namespace="sr-namespace"))


@pytest.mark.parametrize(
    "expected_type, method",
    [
        (SPECIAL_RESOURCE_READY, "set_as_ready"),
        (SPECIAL_RESOURCE_ERRORED, "set_as_errored"),
        (SPECIAL_RESOURCE_PROGRESSING, "set_as_progressing"),
    ],
)
def test_setting_one_condition_true_sets_others_false(expected_type, method):
    client = FakeClient()
    sr = _sr()
    getattr(StatusUpdater(client), method)(sr, "x", "x")

    assert len(client.updates) == 1
    sent = client.updates[0]
    for cond in sent.status.conditions:
        if cond.type == expected_type:
            assert cond.status == ConditionStatus.TRUE
        else:
            assert cond.status != ConditionStatus.TRUE
    assert expected_type in sent.status.state
    assert len(sr.status.conditions) == 3


def test_state_and_reasons():
    client = FakeClient()
    sr = _sr()
    StatusUpdater(client).set_as_errored(sr, "ChartFailure", "boom")
    assert sr.status.state == "Errored: boom"
    errored = find_status_condition(sr.status.conditions, SPECIAL_RESOURCE_ERRORED)
    assert errored.reason == "ChartFailure"
    assert errored.message == "boom"
    ready = find_status_condition(sr.status.conditions, SPECIAL_RESOURCE_READY)
    assert ready.reason == "ErrorHasOccurred"


def test_transition_between_states_keeps_three_conditions():
    client = FakeClient()
    sr = _sr()
    su = StatusUpdater(client)
    su.set_as_progressing(sr, "x", "working")
    su.set_as_ready(sr, "Success", "")
    assert len(sr.status.conditions) == 3
    assert find_status_condition(sr.status.conditions, SPECIAL_RESOURCE_READY).status == ConditionStatus.TRUE
    assert (
        find_status_condition(sr.status.conditions, SPECIAL_RESOURCE_PROGRESSING).status
        == ConditionStatus.FALSE
    )
    assert sr.status.state == "Ready: "


def test_status_update_error_propagates():
    err = ApiError("random error")
    with pytest.raises(ApiError) as info:
        StatusUpdater(FakeClient(error=err)).set_as_ready(_sr(), "x", "x")
    assert info.value is err


def test_set_verification_status_patches_with_original():
    client = FakeClient()
    pv = PreflightValidation(metadata=ObjectMeta(name="pv"))
    status = SRStatus(name="sr")
    pv.status.sr_statuses.append(status)
    status = pv.status.sr_statuses[0]

    StatusUpdater(client).set_verification_status(pv, status, "True", "verified")

    assert status.verification_status == "True"
    assert status.status_reason == "verified"
    assert status.last_transition_time is not None
    original, modified = client.patches[0]
    assert original.status.sr_statuses[0].verification_status == ""
    assert modified.status.sr_statuses[0].verification_status == "True"