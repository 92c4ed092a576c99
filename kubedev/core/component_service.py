"""Component management for kubedev."""

import logging
from typing import List, Optional

from kubedev.core.application_service import ApplicationService
from kubedev.core.context_store import ContextStore
from kubedev.core.errors import (
    ComponentNotFoundError,
    KubedevError,
    NoCurrentComponentError,
    UnsupportedSourceError,
    error_context,
)
from kubedev.core.k8s_client import K8sClientManager
from kubedev.core.labels import (
    APPLICATION_LABEL,
    COMPONENT_LABEL,
    COMPONENT_TYPE_LABEL,
    SOURCE_TYPE_LOCAL,
    SOURCE_URL_ANNOTATION,
    build_labels,
    build_selector,
    decode_source,
    encode_local_source,
)
from kubedev.core.models import ComponentInfo, ComponentSource, ResourceDescriptor
from kubedev.core.resource_directory import ResourceDirectory

logger = logging.getLogger(__name__)


class ComponentService:
    """Creates, builds, lists and deletes components of an application."""

    def __init__(
        self,
        platform: K8sClientManager,
        context_store: ContextStore,
        directory: Optional[ResourceDirectory] = None,
        applications: Optional[ApplicationService] = None
    ) -> None:
        """Initialize the component service.

        Args:
            platform: Platform client
            context_store: Local context store
            directory: Resource directory (creates new one if not provided)
            applications: Application service (creates new one if not provided)
        """
        self._platform = platform
        self._context = context_store
        self._directory = directory or ResourceDirectory(platform)
        self._applications = applications or ApplicationService(
            platform, context_store, self._directory
        )

    def get_current(self, application: Optional[str] = None) -> str:
        """Get the active component of an application.

        Args:
            application: Application name (uses the active one if not provided)

        Raises:
            NoCurrentApplicationError: If no application is given or active
            NoCurrentComponentError: If the application has no active component
        """
        project = self._platform.get_current_project()
        application = self._applications.resolve(application)
        name = self._context.get_active_component(application, project)
        if not name:
            raise NoCurrentComponentError(f"no current component in application {application}")
        return name

    def resolve(self, name: Optional[str] = None, application: Optional[str] = None) -> str:
        """Return name if given, the active component otherwise."""
        if name:
            return name
        return self.get_current(application)

    def _names(self, project: str, application: str) -> List[str]:
        selector = build_selector(build_labels(None, application))
        return self._directory.list_names(project, COMPONENT_LABEL, selector)

    def exists(self, name: str, application: Optional[str] = None) -> bool:
        """Check whether a component has objects in the application."""
        project = self._platform.get_current_project()
        application = self._applications.resolve(application)
        return name in self._names(project, application)

    def set_current(self, name: str, application: Optional[str] = None) -> None:
        """Make an existing component active.

        Raises:
            ComponentNotFoundError: If the component has no objects
        """
        with error_context(f"unable to set current component {name}"):
            project = self._platform.get_current_project()
            application = self._applications.resolve(application)
            if name not in self._names(project, application):
                raise ComponentNotFoundError(
                    f"component {name} does not exist in application {application}"
                )
            self._context.set_active_component(name, application, project)

    def _create(
        self,
        name: str,
        component_type: str,
        source_url: str,
        git_url: Optional[str] = None
    ) -> str:
        project = self._platform.get_current_project()

        # First command on a clean project may be a component create, so the
        # application is created on demand.
        application = self._applications.get_current_or_default()
        if self._applications.ensure(application):
            logger.info(f"Created application {application}")

        labels = build_labels(name, application, include_creation_labels=True)
        labels[COMPONENT_TYPE_LABEL] = component_type
        annotations = {SOURCE_URL_ANNOTATION: source_url}

        output = self._platform.new_app_from_source(
            project, name, component_type, labels, annotations, git_url=git_url
        )
        self._context.set_active_component(name, application, project)
        return output

    def create_from_git(self, name: str, component_type: str, url: str) -> str:
        """Create a component built from a git repository.

        Returns:
            Summary of the created objects
        """
        with error_context(f"unable to create git component {name}"):
            return self._create(name, component_type, url, git_url=url)

    def create_from_dir(self, name: str, component_type: str, directory: str) -> str:
        """Create a component built from a local directory and start its first build.

        Returns:
            Summary of the created objects and the started build
        """
        with error_context(f"unable to create component {name} from {directory}"):
            output = self._create(name, component_type, encode_local_source(directory))

        try:
            build = self.push_local(name, directory)
        except KubedevError as e:
            raise e.with_context(
                f"component {name} was created but its build could not be started"
            ) from e
        return f"{output}\nStarted build {build}"

    def push_local(self, name: str, directory: str) -> str:
        """Start a build of a component using a local directory.

        Returns:
            Name of the started build
        """
        with error_context(f"unable to push {directory} to component {name}"):
            project = self._platform.get_current_project()
            return self._platform.start_binary_build(project, name, directory)

    def rebuild_git(self, name: str) -> str:
        """Rebuild a component from the git repository it was created with.

        Returns:
            Name of the started build
        """
        with error_context(f"unable to rebuild {name}"):
            project = self._platform.get_current_project()
            return self._platform.start_build(project, name)

    def push(self, name: Optional[str] = None, directory: Optional[str] = None) -> str:
        """Build a component again from its recorded source.

        Args:
            name: Component name (uses the active one if not provided)
            directory: Local directory to upload instead of the recorded one

        Returns:
            Name of the started build
        """
        name = self.resolve(name)
        if directory:
            return self.push_local(name, directory)

        source = self.get_source(name)
        if source.source_type == SOURCE_TYPE_LOCAL:
            return self.push_local(name, source.location)
        return self.rebuild_git(name)

    def get_type(self, name: str, application: str, project: str) -> str:
        """Get the type of a component.

        Raises:
            InconsistentLabelError: If the component's objects disagree on the type
        """
        with error_context(f"unable to get type of component {name}"):
            selector = build_selector(build_labels(name, application))
            resources = self._directory.fetch_group(project, selector)
            return self._directory.assert_label_consistency(resources, COMPONENT_TYPE_LABEL)

    def list(self, application: Optional[str] = None) -> List[ComponentInfo]:
        """List components of an application.

        Args:
            application: Application name (uses the active one if not provided)
        """
        with error_context("unable to list components"):
            project = self._platform.get_current_project()
            application = self._applications.resolve(application)
            return [
                ComponentInfo(name=name, type=self.get_type(name, application, project))
                for name in self._names(project, application)
            ]

    def get_source(self, name: str, application: Optional[str] = None) -> ComponentSource:
        """Find out where a component's source code comes from.

        Returns:
            ComponentSource of type git (repository URI) or local (directory path)

        Raises:
            ComponentNotFoundError: If the build config belongs to another application
            UnsupportedSourceError: If the build source is neither Git nor local Binary
        """
        with error_context(f"unable to get source of component {name}"):
            project = self._platform.get_current_project()
            application = self._applications.resolve(application)
            build_config = self._platform.get_build_config(project, name)

            metadata = build_config.get("metadata") or {}
            labels = metadata.get("labels") or {}
            if labels.get(COMPONENT_LABEL) != name or labels.get(APPLICATION_LABEL) != application:
                raise ComponentNotFoundError(
                    f"component {name} does not exist in application {application}"
                )

            source = (build_config.get("spec") or {}).get("source") or {}
            source_type = source.get("type")
            if source_type == "Git":
                result = ComponentSource(source_type="git", location=source["git"]["uri"])
            elif source_type == "Binary":
                source_url = (metadata.get("annotations") or {}).get(SOURCE_URL_ANNOTATION, "")
                result = decode_source(source_url) if source_url else None
                if result is None or result.source_type != SOURCE_TYPE_LOCAL:
                    raise UnsupportedSourceError(
                        f"binary build of {name} has no local source recorded"
                    )
            else:
                raise UnsupportedSourceError(f"unsupported build source type {source_type}")

        logger.debug(f"Component {name} source type is {result.source_type} ({result.location})")
        return result

    def delete(
        self,
        name: str,
        application: Optional[str] = None,
        include_urls: bool = False
    ) -> List[ResourceDescriptor]:
        """Delete every object of a component.

        Routes are kept unless include_urls is set. The active component is
        cleared only after the objects were deleted.

        Returns:
            Deleted objects

        Raises:
            ComponentNotFoundError: If the component has no objects
        """
        with error_context(f"unable to delete component {name}"):
            project = self._platform.get_current_project()
            application = self._applications.resolve(application)
            selector = build_selector(build_labels(name, application))

            deleted = self._directory.delete_group(project, selector, include_routes=include_urls)
            if not deleted:
                raise ComponentNotFoundError(
                    f"component {name} does not exist in application {application}"
                )

            if self._context.get_active_component(application, project) == name:
                self._context.set_active_component("", application, project)

        logger.info(f"Deleted component {name} ({len(deleted)} objects)")
        return deleted
