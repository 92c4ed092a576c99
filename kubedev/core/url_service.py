"""URL management for kubedev.

A URL is a Route pointing at a component's service. Routes carry the
component's filter labels so they can be listed per application or
per component.
"""

import logging
from typing import List, Optional

from kubedev.core.application_service import ApplicationService
from kubedev.core.component_service import ComponentService
from kubedev.core.context_store import ContextStore
from kubedev.core.errors import ComponentNotFoundError, error_context
from kubedev.core.k8s_client import K8sClientManager
from kubedev.core.labels import COMPONENT_LABEL, build_labels, build_selector
from kubedev.core.models import ResourceDescriptor, URLInfo
from kubedev.core.resource_directory import ResourceDirectory

logger = logging.getLogger(__name__)


class URLService:
    """Creates, lists and deletes URLs of components."""

    def __init__(
        self,
        platform: K8sClientManager,
        context_store: ContextStore,
        directory: Optional[ResourceDirectory] = None,
        applications: Optional[ApplicationService] = None,
        components: Optional[ComponentService] = None
    ) -> None:
        self._platform = platform
        self._directory = directory or ResourceDirectory(platform)
        self._applications = applications or ApplicationService(
            platform, context_store, self._directory
        )
        self._components = components or ComponentService(
            platform, context_store, self._directory, self._applications
        )

    @staticmethod
    def _to_url(route: ResourceDescriptor) -> URLInfo:
        return URLInfo(
            name=route.name,
            url=route.payload.get("host") or "",
            component=route.labels.get(COMPONENT_LABEL, "")
        )

    def create(
        self,
        component: Optional[str] = None,
        application: Optional[str] = None
    ) -> URLInfo:
        """Expose a component outside the cluster.

        Args:
            component: Component name (uses the active one if not provided)
            application: Application name (uses the active one if not provided)

        Returns:
            URLInfo with the name and host assigned by the cluster

        Raises:
            ComponentNotFoundError: If the component has no objects
        """
        with error_context("unable to create URL"):
            project = self._platform.get_current_project()
            application = self._applications.resolve(application)
            component = self._components.resolve(component, application)
            if not self._components.exists(component, application):
                raise ComponentNotFoundError(
                    f"component {component} does not exist in application {application}"
                )

            route = self._platform.create_route(
                project, component, build_labels(component, application)
            )

        url = self._to_url(route)
        logger.info(f"Created URL {url.name} ({url.url}) for component {component}")
        return url

    def delete(self, name: str) -> None:
        """Delete a URL by its own name."""
        with error_context(f"unable to delete URL {name}"):
            project = self._platform.get_current_project()
            self._directory.delete_route(project, name)

    def list(
        self,
        component: str = "",
        application: Optional[str] = None
    ) -> List[URLInfo]:
        """List URLs of an application, optionally narrowed to one component.

        Args:
            component: Component name, "" for every component
            application: Application name (uses the active one if not provided)
        """
        with error_context("unable to list URLs"):
            project = self._platform.get_current_project()
            application = self._applications.resolve(application)
            selector = build_selector(build_labels(component or None, application))
            logger.debug(f"Listing routes with label selector: {selector}")
            routes = self._directory.list_routes(project, selector)

        return [self._to_url(route) for route in routes]
