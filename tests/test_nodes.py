import pytest

from specialresource.api import ApiError, ConflictError, ForbiddenError
from specialresource.nodes import label_nodes_according_to_state

KEY = "specialresource.openshift.io/state-simple-kmod-0000"


class FakeClient:
    def __init__(self, nodes, update_error=None, list_error=None):
        self.nodes = nodes
        self.update_error = update_error
        self.list_error = list_error
        self.selectors = []
        self.updated = []

    def get_nodes_by_labels(self, labels):
        self.selectors.append(dict(labels))
        if self.list_error:
            raise self.list_error
        return self.nodes

    def update(self, obj):
        if self.update_error:
            raise self.update_error
        self.updated.append(obj)


def test_labels_every_node_ready():
    nodes = [
        {"metadata": {"name": "a", "labels": {"x": "y"}}},
        {"metadata": {"name": "b"}},
    ]
    client = FakeClient(nodes)
    label_nodes_according_to_state(client, {"role": "worker"}, KEY)
    assert client.selectors == [{"role": "worker"}]
    assert [n["metadata"]["name"] for n in client.updated] == ["a", "b"]
    assert all(n["metadata"]["labels"][KEY] == "Ready" for n in client.updated)
    assert client.updated[0]["metadata"]["labels"]["x"] == "y"


def test_no_nodes_no_updates():
    client = FakeClient([])
    label_nodes_according_to_state(client, {}, KEY)
    assert client.updated == []


def test_list_failure_wrapped():
    client = FakeClient([], list_error=ApiError("boom"))
    with pytest.raises(ApiError, match="failed to get nodes with labels"):
        label_nodes_according_to_state(client, {}, KEY)


def test_forbidden():
    client = FakeClient([{"metadata": {}}], update_error=ForbiddenError("no"))
    with pytest.raises(ApiError, match="^forbidden - check Role") as info:
        label_nodes_according_to_state(client, {}, KEY)
    assert isinstance(info.value.__cause__, ForbiddenError)


def test_conflict():
    client = FakeClient([{"metadata": {}}], update_error=ConflictError("c"))
    with pytest.raises(ApiError, match=f"node Conflict Label {KEY}"):
        label_nodes_according_to_state(client, {}, KEY)


def test_other_update_error():
    client = FakeClient([{"metadata": {}}], update_error=ApiError("x"))
    with pytest.raises(ApiError, match="couldn't Update Node"):
        label_nodes_according_to_state(client, {}, KEY)