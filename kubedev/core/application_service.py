"""Application management for kubedev.

An application has no object of its own on the cluster. It exists as long
as at least one object in the project carries its application label.
"""

import logging
from typing import List, Optional

from kubedev.core.context_store import ContextStore
from kubedev.core.errors import (
    ApplicationNotFoundError,
    NoCurrentApplicationError,
    error_context,
)
from kubedev.core.k8s_client import K8sClientManager
from kubedev.core.labels import APPLICATION_LABEL, build_labels, build_selector
from kubedev.core.models import ApplicationInfo, ResourceDescriptor
from kubedev.core.resource_directory import ResourceDirectory

logger = logging.getLogger(__name__)

DEFAULT_APPLICATION = "app"


class ApplicationService:
    """Creates, lists, selects and deletes applications."""

    def __init__(
        self,
        platform: K8sClientManager,
        context_store: ContextStore,
        directory: Optional[ResourceDirectory] = None,
        default_application: str = DEFAULT_APPLICATION
    ) -> None:
        """Initialize the application service.

        Args:
            platform: Platform client
            context_store: Local context store
            directory: Resource directory (creates new one if not provided)
            default_application: Name used when no application was selected yet
        """
        self._platform = platform
        self._context = context_store
        self._directory = directory or ResourceDirectory(platform)
        self._default_application = default_application

    def get_current(self) -> str:
        """Get the active application of the current project.

        Raises:
            NoCurrentApplicationError: If no application is active
        """
        project = self._platform.get_current_project()
        name = self._context.get_active_application(project)
        if not name:
            raise NoCurrentApplicationError(f"no current application in project {project}")
        return name

    def resolve(self, name: Optional[str] = None) -> str:
        """Return name if given, the active application otherwise."""
        if name:
            return name
        return self.get_current()

    def get_current_or_default(self) -> str:
        """Get the active application, falling back to the default one.

        The default application is recorded as active so later commands
        resolve to it.
        """
        project = self._platform.get_current_project()
        name = self._context.get_active_application(project)
        if name:
            return name

        logger.debug(f"No active application in {project}, using '{self._default_application}'")
        self._context.set_active_application(self._default_application, project)
        return self._default_application

    def _cluster_names(self, project: str) -> List[str]:
        # Key-only selector over every kind; routes can outlive their component
        return self._directory.list_names(
            project, APPLICATION_LABEL, APPLICATION_LABEL, include_routes=True
        )

    def exists(self, name: str) -> bool:
        """Check whether any object in the current project carries the application label."""
        with error_context(f"unable to check whether application {name} exists"):
            project = self._platform.get_current_project()
            return name in self._cluster_names(project)

    def create(self, name: str) -> str:
        """Create an application and make it active.

        Nothing is created on the cluster: the application appears there once
        its first component is created. Calling this again is harmless.
        """
        with error_context(f"unable to create application {name}"):
            project = self._platform.get_current_project()
            self._context.set_active_application(name, project)
        logger.info(f"Application {name} is now active in {project}")
        return name

    def ensure(self, name: str) -> bool:
        """Create the application unless it already exists.

        Returns:
            True if the application had to be created
        """
        if self.exists(name):
            return False
        self.create(name)
        return True

    def list(self) -> List[ApplicationInfo]:
        """List applications of the current project.

        Includes applications found on the cluster and the ones created
        locally that have no objects yet.
        """
        with error_context("unable to list applications"):
            project = self._platform.get_current_project()
            names = set(self._cluster_names(project))
            names.update(self._context.list_applications(project))
            active = self._context.get_active_application(project)

        return [ApplicationInfo(name=name, active=name == active) for name in sorted(names)]

    def set_current(self, name: str) -> None:
        """Make an existing application active.

        Raises:
            ApplicationNotFoundError: If the application is unknown
        """
        with error_context(f"unable to set current application {name}"):
            if name not in [app.name for app in self.list()]:
                raise ApplicationNotFoundError(f"application {name} does not exist")
            project = self._platform.get_current_project()
            self._context.set_active_application(name, project)

    def delete(self, name: str) -> List[ResourceDescriptor]:
        """Delete every object of an application, routes included.

        Returns:
            Deleted objects

        Raises:
            ApplicationNotFoundError: If the application is unknown
        """
        with error_context(f"unable to delete application {name}"):
            if name not in [app.name for app in self.list()]:
                raise ApplicationNotFoundError(f"application {name} does not exist")

            project = self._platform.get_current_project()
            selector = build_selector(build_labels(None, name))
            deleted = self._directory.delete_group(project, selector, include_routes=True)
            self._context.remove_application(name, project)

        logger.info(f"Deleted application {name} ({len(deleted)} objects)")
        return deleted
