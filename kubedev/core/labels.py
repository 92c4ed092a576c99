"""Label and annotation scheme that encodes kubedev identity on cluster objects.

Applications and components have no stored record of their own. Every
object that belongs to a component carries the application and component
labels below, so membership can be recovered with a label selector.
"""

import os
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import unquote, urlparse

from kubedev.core.models import ComponentSource

APPLICATION_LABEL = "app.kubernetes.io/name"
COMPONENT_LABEL = "app.kubernetes.io/component-name"
COMPONENT_TYPE_LABEL = "app.kubernetes.io/component-type"
SOURCE_URL_ANNOTATION = "app.kubernetes.io/url"

# Only stamped on new objects, never used for filtering
ADDITIONAL_APPLICATION_LABELS = ["app"]

SOURCE_TYPE_GIT = "git"
SOURCE_TYPE_LOCAL = "local"


def build_labels(
    component: Optional[str],
    application: str,
    include_creation_labels: bool = False
) -> Dict[str, str]:
    """Build the labels identifying a component (or a whole application).

    Use include_creation_labels=True when labeling a new object and False
    when the result is used as a filter for existing objects.

    Args:
        component: Component name, or None/"" for application-wide labels
        application: Application name
        include_creation_labels: Add labels only applied at creation time

    Returns:
        Label mapping
    """
    labels = {APPLICATION_LABEL: application}
    if include_creation_labels:
        for key in ADDITIONAL_APPLICATION_LABELS:
            labels[key] = application
    if component:
        labels[COMPONENT_LABEL] = component
    return labels


def build_selector(labels: Dict[str, str]) -> str:
    """Turn a label mapping into an equality selector sorted by key."""
    return ",".join(f"{key}={labels[key]}" for key in sorted(labels))


def parse_selector(selector: str) -> Dict[str, Optional[str]]:
    """Parse an equality selector back into a mapping.

    Key-only terms (label must exist) map to None.
    """
    parsed: Dict[str, Optional[str]] = {}
    for term in selector.split(","):
        term = term.strip()
        if not term:
            continue
        if "=" in term:
            key, value = term.split("=", 1)
            parsed[key.strip()] = value.strip()
        else:
            parsed[term] = None
    return parsed


def encode_local_source(directory: str) -> str:
    """Encode a local directory as a file:// URI."""
    return Path(os.path.abspath(directory)).as_uri()


def decode_source(source_url: str) -> ComponentSource:
    """Recover the source type and location from a recorded source URL.

    Args:
        source_url: Value of the source annotation

    Returns:
        ComponentSource with type local for file:// URIs and git otherwise
    """
    parsed = urlparse(source_url)
    if parsed.scheme == "file":
        return ComponentSource(source_type=SOURCE_TYPE_LOCAL, location=unquote(parsed.path))
    return ComponentSource(source_type=SOURCE_TYPE_GIT, location=source_url)
