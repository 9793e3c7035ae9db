"""Helpers for manipulating unstructured cluster objects held as dicts."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

DEPRECATED_TEMPLATE_GENERATION = "deprecated.daemonset.template.generation"

_NOT_UPDATEABLE = frozenset({"ServiceAccount", "Pod"})

_NOT_NAMESPACED = frozenset(
    {
        "Namespace",
        "ClusterRole",
        "ClusterRoleBinding",
        "SecurityContextConstraint",
        "SpecialResource",
    }
)

_NEEDS_VERSION_UPDATE = frozenset(
    {
        "SecurityContextConstraints",
        "Service",
        "ServiceMonitor",
        "Route",
        "Build",
        "BuildRun",
        "BuildConfig",
        "ImageStream",
        "PrometheusRule",
        "CSIDriver",
        "Issuer",
        "CustomResourceDefinition",
        "Certificate",
        "SpecialResource",
        "OperatorGroup",
        "CertManager",
        "MutatingWebhookConfiguration",
        "ValidatingWebhookConfiguration",
        "Deployment",
        "ImagePolicy",
        "PlacementBinding",
        "PlacementRule",
        "Policy",
    }
)


def nested_get(obj: Mapping[str, Any], *fields: str) -> Any:
    """Return the value at the nested path.

    Raises KeyError if the path is missing and TypeError if an intermediate
    value is not a mapping.
    """
    current: Any = obj
    walked: list[str] = []
    for name in fields:
        if not isinstance(current, Mapping):
            raise TypeError(
                f"{'.'.join(walked)} is of the type {type(current).__name__}, expected a mapping"
            )
        current = current[name]
        walked.append(name)
    return current


def nested_set(obj: dict[str, Any], value: Any, *fields: str) -> None:
    """Set the value at the nested path, creating intermediate dicts."""
    if not fields:
        raise ValueError("no field path given")
    current = obj
    walked: list[str] = []
    for name in fields[:-1]:
        walked.append(name)
        child = current.get(name)
        if child is None:
            child = current[name] = {}
        elif not isinstance(child, dict):
            raise TypeError(
                f"value cannot be set because {'.'.join(walked)} is not a map"
            )
        current = child
    current[fields[-1]] = value


def _nested_string(obj: Mapping[str, Any], *fields: str) -> str | None:
    try:
        value = nested_get(obj, *fields)
    except KeyError:
        return None
    if not isinstance(value, str):
        raise TypeError(f"{'.'.join(fields)} is of the type {type(value).__name__}, expected str")
    return value


def _nested_map(obj: Mapping[str, Any], *fields: str) -> dict[str, Any] | None:
    try:
        value = nested_get(obj, *fields)
    except KeyError:
        return None
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise TypeError(f"{'.'.join(fields)} is of the type {type(value).__name__}, expected a map")
    return dict(value)


def _kind(obj: Mapping[str, Any]) -> str:
    kind = obj.get("kind", "")
    return kind if isinstance(kind, str) else ""


def _name(obj: Mapping[str, Any]) -> str:
    try:
        return _nested_string(obj, "metadata", "name") or ""
    except TypeError:
        return ""


class ResourceHelper:
    """Kind-specific rules for creating and updating cluster objects."""

    def is_namespaced(self, kind: str) -> bool:
        return kind not in _NOT_NAMESPACED

    def is_not_updateable(self, kind: str) -> bool:
        return kind in _NOT_UPDATEABLE

    def needs_resource_version_update(self, kind: str) -> bool:
        return kind in _NEEDS_VERSION_UPDATE

    def update_resource_version(self, req: dict[str, Any], found: Mapping[str, Any]) -> None:
        """Copy the resourceVersion (and a Service's clusterIP) from found into req."""
        kind = _kind(found)

        if self.needs_resource_version_update(kind):
            version = _nested_string(found, "metadata", "resourceVersion")
            if version is None:
                raise ValueError("resourceVersion not found")
            nested_set(req, version, "metadata", "resourceVersion")

        if kind == "Service":
            cluster_ip = _nested_string(found, "spec", "clusterIP")
            if cluster_ip is None:
                raise ValueError("clusterIP not found")
            nested_set(req, cluster_ip, "spec", "clusterIP")

    def set_node_selector_terms(self, obj: dict[str, Any], terms: Mapping[str, str]) -> None:
        """Merge terms into the node selector of workload objects."""
        kind = _kind(obj)
        if kind in ("DaemonSet", "Deployment", "Statefulset"):
            path: tuple[str, ...] = ("spec", "template", "spec", "nodeSelector")
        elif kind in ("Pod", "BuildConfig"):
            path = ("spec", "nodeSelector")
        else:
            return

        try:
            self._node_selector_terms(terms, obj, *path)
        except (TypeError, ValueError) as err:
            raise ValueError(f"cannot setup {kind} nodeSelector: {err}") from err

    def _node_selector_terms(
        self, terms: Mapping[str, str], obj: dict[str, Any], *fields: str
    ) -> None:
        node_selector = _nested_map(obj, *fields)
        if node_selector is None:
            node_selector = {}
        node_selector.update(terms)
        try:
            nested_set(obj, node_selector, *fields)
        except TypeError as err:
            raise ValueError(f"cannot update nodeSelector for {_name(obj)} : {err}") from err

    def is_one_timer(self, obj: Mapping[str, Any]) -> bool:
        """Report whether obj is a Pod that is never restarted."""
        if _kind(obj) == "Pod":
            restart_policy = _nested_string(obj, "spec", "restartPolicy")
            if restart_policy is None:
                raise ValueError("restartPolicy not found")
            return restart_policy == "Never"
        return False

    def set_label(self, obj: dict[str, Any], label: str) -> None:
        """Set label to "true" on the object and on its pod template."""
        labels = _nested_map(obj, "metadata", "labels") or {}
        labels[label] = "true"
        nested_set(obj, labels, "metadata", "labels")
        self._set_sub_resource_label(obj, label)

    def _set_sub_resource_label(self, obj: dict[str, Any], label: str) -> None:
        if _kind(obj) not in ("DaemonSet", "Deployment", "StatefulSet"):
            return
        path = ("spec", "template", "metadata", "labels")
        labels = _nested_map(obj, *path)
        if labels is None:
            raise ValueError("labels not found")
        labels[label] = "true"
        nested_set(obj, labels, *path)

    def set_meta_data(self, obj: dict[str, Any], name: str, namespace: str) -> None:
        """Mark the object as belonging to a Helm release."""
        annotations = _nested_map(obj, "metadata", "annotations") or {}
        annotations["meta.helm.sh/release-name"] = name
        annotations["meta.helm.sh/release-namespace"] = namespace
        nested_set(obj, annotations, "metadata", "annotations")

        labels = _nested_map(obj, "metadata", "labels") or {}
        labels["app.kubernetes.io/managed-by"] = "Helm"
        nested_set(obj, labels, "metadata", "labels")

    def set_template_generation(self, obj: dict[str, Any], found: Mapping[str, Any]) -> None:
        """Carry a DaemonSet's template generation annotation over from found."""
        if _kind(obj) != "DaemonSet":
            return
        found_annotations = _nested_map(found, "metadata", "annotations")
        if not found_annotations or DEPRECATED_TEMPLATE_GENERATION not in found_annotations:
            return
        annotations = _nested_map(obj, "metadata", "annotations") or {}
        annotations[DEPRECATED_TEMPLATE_GENERATION] = found_annotations[
            DEPRECATED_TEMPLATE_GENERATION
        ]
        nested_set(obj, annotations, "metadata", "annotations")