"""Fetch Helm repository files stored in ConfigMaps, addressed by cm:// URLs."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import urlsplit

from specialresource.api import ApiError

INDEX_FILE = "index.yaml"


@dataclass
class ConfigMap:
    name: str
    namespace: str
    data: dict[str, str] = field(default_factory=dict)
    binary_data: dict[str, bytes] = field(default_factory=dict)


class ConfigMapClient(Protocol):
    def get_config_map(self, namespace: str, name: str) -> ConfigMap:
        """Return the ConfigMap or raise ApiError."""


def get_logger() -> logging.Logger:
    """Return a logger that writes to stderr only when HELM_DEBUG is "true"."""
    logger = logging.getLogger("specialresource.cmgetter")
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if os.environ.get("HELM_DEBUG") == "true":
        handler = logging.StreamHandler(sys.stderr)
        prefix = os.environ.get("HELM_PLUGIN_NAME", "")
        handler.setFormatter(logging.Formatter(f"{prefix}%(asctime)s %(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
    else:
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.CRITICAL + 1)
    return logger


class ConfigMapGetter:
    """Reads files of a chart repository kept in a ConfigMap."""

    def __init__(self, client: ConfigMapClient, logger: logging.Logger | None = None) -> None:
        self.client = client
        self.logger = logger or get_logger()

    def get(self, url: str) -> bytes:
        """Return the element named by a URL of the form cm://NAMESPACE/NAME/ELEMENT."""
        parts = urlsplit(url)
        namespace = parts.netloc
        self.logger.debug("Namespace: %s", namespace)

        path_elements = parts.path.split("/")
        if len(path_elements) != 3:
            raise ValueError(f"{parts.path}: invalid path, should be NAMESPACE/NAME/ELEMENT")

        _, resource_name, element = path_elements
        self.logger.debug("CM name: %s", resource_name)
        self.logger.debug("Element: %s", element)

        try:
            config_map = self.client.get_config_map(namespace, resource_name)
        except ApiError as err:
            raise ApiError(
                f"could not GET ConfigMap {namespace}/{resource_name}: {err}"
            ) from err

        if element == INDEX_FILE:
            return config_map.data.get(element, "").encode()
        return config_map.binary_data.get(element, b"")