"""Finalization and cleanup of SpecialResource objects."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from specialresource.api import (
    ApiError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    SpecialResource,
)
from specialresource.resourcehelper import nested_set

FINALIZER = "sro.openshift.io/finalizer"
PREV_VERSION_FINALIZER = "finalizer.sro.openshift.io"

log = logging.getLogger(__name__)


class FinalizerClient(Protocol):
    def update(self, obj: Any) -> None: ...

    def get_nodes_by_labels(self, labels: Mapping[str, str]) -> list[dict[str, Any]]: ...

    def get(self, api_version: str, kind: str, name: str, namespace: str = "") -> dict[str, Any]: ...

    def delete(self, obj: Any) -> None: ...

    def server_groups_and_resources(self) -> Iterable[tuple[str, Iterable[str]]]: ...

    def list(
        self, api_version: str, kind: str, namespace: str, label_selector: Mapping[str, str]
    ) -> list[dict[str, Any]]: ...


class PollActions(Protocol):
    def for_resource_unavailability(self, obj: dict[str, Any]) -> None: ...


def _metadata(obj: Mapping[str, Any]) -> Mapping[str, Any]:
    meta = obj.get("metadata")
    return meta if isinstance(meta, Mapping) else {}


class SpecialResourceFinalizer:
    """Adds the finalizer to SpecialResources and cleans up after their deletion."""

    def __init__(self, kube_client: FinalizerClient, poll_actions: PollActions | None = None) -> None:
        self.kube_client = kube_client
        self.poll_actions = poll_actions

    def add_finalizer_to_special_resource(self, sr: SpecialResource) -> None:
        if sr.metadata.has_finalizer(FINALIZER):
            return
        log.info("Adding finalizer")
        sr.metadata.add_finalizer(FINALIZER)
        try:
            self.kube_client.update(sr)
        except Exception:
            log.exception("Adding finalizer failed")
            raise

    def finalize(self, sr: SpecialResource) -> None:
        """Run the cleanup logic and drop the finalizers, if the finalizer is present."""
        if not sr.metadata.has_finalizer(FINALIZER):
            return
        try:
            self._finalize_special_resource(sr)
        except Exception:
            log.exception("Finalization logic failed.")
            raise

        sr.metadata.remove_finalizer(FINALIZER)
        # Objects created by older operator versions carry the previous finalizer.
        sr.metadata.remove_finalizer(PREV_VERSION_FINALIZER)
        try:
            self.kube_client.update(sr)
        except Exception:
            log.exception("Could not remove finalizer after running finalization logic")
            raise

    def _finalize_nodes(self, sr: SpecialResource, remove: str) -> None:
        try:
            nodes = self.kube_client.get_nodes_by_labels(sr.spec.node_selector)
        except ApiError as err:
            raise ApiError(f"could not fetch nodes: {err}") from err

        for node in nodes:
            labels = _metadata(node).get("labels") or {}
            nested_set(node, {k: v for k, v in labels.items() if remove not in k}, "metadata", "labels")
            try:
                self.kube_client.update(node)
            except ForbiddenError as err:
                raise ApiError(
                    f"forbidden check Role, ClusterRole and Bindings for operator: {err}"
                ) from err
            except ConflictError as err:
                raise ApiError(f"conflict during label removal: {err}") from err
            except ApiError:
                log.warning("failed to update node labels", exc_info=True)

    def _finalize_special_resource(self, sr: SpecialResource) -> None:
        # Remove all state labels of this SpecialResource from the nodes.
        self._finalize_nodes(sr, "specialresource.openshift.io/state-" + sr.name)

        namespace = sr.spec.namespace
        try:
            ns = self.kube_client.get("v1", "Namespace", namespace)
        except NotFoundError:
            return
        except Exception:
            log.exception("Failed to get namespace %s of SpecialResource %s", namespace, sr.name)
            raise

        for owner in _metadata(ns).get("ownerReferences") or []:
            if owner.get("kind") != "SpecialResource":
                continue
            try:
                self.kube_client.delete(ns)
                if self.poll_actions is not None:
                    self.poll_actions.for_resource_unavailability(ns)
            except Exception:
                log.exception("Failed to delete namespace %s", namespace)
                raise

    def remove_resources(self, owned_label: str, sr: SpecialResource) -> None:
        """Delete every object carrying owned_label that is owned by sr."""
        try:
            api_resources = list(self.kube_client.server_groups_and_resources())
        except ApiError as err:
            raise ApiError(f"unable to retrieve server groups and resources: {err}") from err

        for group_version, kinds in api_resources:
            for kind in kinds:
                try:
                    self._delete_resource(
                        owned_label, sr.spec.namespace, group_version, kind, sr.metadata.uid
                    )
                except ApiError as err:
                    raise ApiError(
                        f"unable to delete owned resources {group_version}/{kind}: {err}"
                    ) from err

    def _delete_resource(
        self, owned_label: str, namespace: str, api_version: str, kind: str, uid: str
    ) -> None:
        try:
            objects = self.kube_client.list(api_version, kind, namespace, {owned_label: "true"})
        except ApiError:
            return
        for obj in objects:
            refs = _metadata(obj).get("ownerReferences") or []
            if any(ref.get("uid") == uid for ref in refs):
                self.kube_client.delete(obj)
                log.info(
                    "Owned object deleted: name=%s kind=%s",
                    _metadata(obj).get("name", ""),
                    obj.get("kind", ""),
                )