"""Labelling of nodes with the state a SpecialResource has reached."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from specialresource.api import ApiError, ConflictError, ForbiddenError

READY_LABEL_VALUE = "Ready"

log = logging.getLogger(__name__)


class NodeClient(Protocol):
    def get_nodes_by_labels(self, labels: Mapping[str, str]) -> list[dict[str, Any]]: ...

    def update(self, obj: Any) -> None: ...


def label_nodes_according_to_state(
    kube_client: NodeClient, node_selector: Mapping[str, str], key: str
) -> None:
    """Set the label key to "Ready" on every node matching node_selector."""
    try:
        nodes = kube_client.get_nodes_by_labels(node_selector)
    except ApiError as err:
        raise ApiError(
            f"failed to get nodes with labels in labelNodesAccordingToState: {err}"
        ) from err

    for node in nodes:
        metadata = node.setdefault("metadata", {})
        labels = metadata.get("labels")
        if labels is None:
            labels = metadata["labels"] = {}
        labels[key] = READY_LABEL_VALUE

        try:
            kube_client.update(node)
        except ForbiddenError as err:
            raise ApiError(f"forbidden - check Role, ClusterRole and Bindings: {err}") from err
        except ConflictError as err:
            raise ApiError(f"node Conflict Label {key} err {err}") from err
        except ApiError as err:
            log.error("Node Update failed for label %s: %s", key, err)
            raise ApiError(f"couldn't Update Node: {err}") from err