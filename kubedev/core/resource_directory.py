"""Queries cluster objects grouped by kubedev labels."""

import logging
from typing import List, Sequence

from kubedev.core.errors import InconsistentLabelError, NotFoundError, error_context
from kubedev.core.k8s_client import ALL_KINDS, COMPONENT_KINDS, K8sClientManager
from kubedev.core.models import ResourceDescriptor

logger = logging.getLogger(__name__)


class ResourceDirectory:
    """Looks up labeled objects through the platform client.

    The cluster is the only source of truth; nothing is cached between calls
    and nothing is retried.
    """

    def __init__(self, platform: K8sClientManager) -> None:
        """Initialize the resource directory.

        Args:
            platform: Platform client
        """
        self._platform = platform

    def list_names(
        self,
        project: str,
        label_key: str,
        selector: str,
        include_routes: bool = False
    ) -> List[str]:
        """Distinct values of a label among objects matching a selector.

        Args:
            project: Namespace to query
            label_key: Label whose values are collected
            selector: Label selector restricting the objects
            include_routes: Also look at Routes

        Returns:
            Sorted list of distinct values
        """
        kinds = ALL_KINDS if include_routes else COMPONENT_KINDS
        with error_context(f"unable to list values of {label_key} in {project}"):
            values = self._platform.get_label_values(project, label_key, selector, kinds)
        names = sorted(set(values))
        logger.debug(f"Values of {label_key} matching '{selector}': {names}")
        return names

    def fetch_group(
        self,
        project: str,
        selector: str,
        include_routes: bool = False
    ) -> List[ResourceDescriptor]:
        """Fetch every object matching a selector.

        Args:
            project: Namespace to query
            selector: Label selector
            include_routes: Also fetch Routes

        Returns:
            Matching objects in platform order
        """
        kinds = ALL_KINDS if include_routes else COMPONENT_KINDS
        with error_context(f"unable to fetch objects matching '{selector}'"):
            return self._platform.list_resources(project, selector, kinds)

    def delete_group(
        self,
        project: str,
        selector: str,
        include_routes: bool = False
    ) -> List[ResourceDescriptor]:
        """Delete every object matching a selector.

        Returns:
            Deleted objects
        """
        kinds: Sequence[str] = ALL_KINDS if include_routes else COMPONENT_KINDS
        with error_context(f"unable to delete objects matching '{selector}'"):
            return self._platform.delete_resources(project, selector, kinds)

    def list_routes(self, project: str, selector: str) -> List[ResourceDescriptor]:
        """Fetch Routes matching a selector."""
        with error_context(f"unable to list routes matching '{selector}'"):
            return self._platform.list_routes(project, selector)

    def delete_route(self, project: str, name: str) -> None:
        """Delete a Route by name."""
        with error_context(f"unable to delete route {name}"):
            self._platform.delete_route(project, name)

    @staticmethod
    def assert_label_consistency(
        resources: Sequence[ResourceDescriptor],
        label_key: str
    ) -> str:
        """Return the value of a label shared by all resources.

        Args:
            resources: Objects that must agree on the label
            label_key: Label to compare

        Returns:
            The common value

        Raises:
            NotFoundError: If there are no resources or none carries the label
            InconsistentLabelError: If any resource's value differs from the first
        """
        if not resources:
            raise NotFoundError(f"no objects found to read {label_key} from")

        expected = resources[0].labels.get(label_key)
        for resource in resources[1:]:
            value = resource.labels.get(label_key)
            if value != expected:
                raise InconsistentLabelError(
                    f"data mismatch: {resource.kind} {resource.name} has {label_key}={value!r}, "
                    f"{resources[0].kind} {resources[0].name} has {expected!r}"
                )

        if expected is None:
            raise NotFoundError(f"no objects carry {label_key}")
        return expected
