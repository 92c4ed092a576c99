"""Shared fixtures: an in-memory cluster that honours label selectors."""

from collections import defaultdict
from typing import Dict, List, Optional, Sequence

import pytest

from kubedev.core.application_service import ApplicationService
from kubedev.core.component_service import ComponentService
from kubedev.core.context_store import ContextStore
from kubedev.core.errors import NoCurrentProjectError, UpstreamError
from kubedev.core.k8s_client import COMPONENT_KINDS
from kubedev.core.labels import parse_selector
from kubedev.core.models import ResourceDescriptor
from kubedev.core.resource_directory import ResourceDirectory
from kubedev.core.url_service import URLService


class FakePlatform:
    """Stands in for K8sClientManager."""

    def __init__(self, project: Optional[str] = "myproject") -> None:
        self.project = project
        self.objects: Dict[str, List[ResourceDescriptor]] = defaultdict(list)
        self.build_configs: Dict[str, dict] = {}
        self.builds: List[tuple] = []
        self._route_count = 0

    def get_current_project(self) -> str:
        if self.project is None:
            raise NoCurrentProjectError("no active context in kubeconfig")
        return self.project

    @staticmethod
    def _matches(resource: ResourceDescriptor, selector: str) -> bool:
        for key, value in parse_selector(selector).items():
            if key not in resource.labels:
                return False
            if value is not None and resource.labels[key] != value:
                return False
        return True

    def list_resources(
        self,
        project: str,
        selector: str,
        kinds: Sequence[str] = COMPONENT_KINDS
    ) -> List[ResourceDescriptor]:
        return [
            r for r in self.objects[project]
            if r.kind in kinds and self._matches(r, selector)
        ]

    def get_label_values(
        self,
        project: str,
        label_key: str,
        selector: str,
        kinds: Sequence[str] = COMPONENT_KINDS
    ) -> List[str]:
        return [
            r.labels[label_key]
            for r in self.list_resources(project, selector, kinds)
            if label_key in r.labels
        ]

    def delete_resources(
        self,
        project: str,
        selector: str,
        kinds: Sequence[str] = COMPONENT_KINDS
    ) -> List[ResourceDescriptor]:
        deleted = self.list_resources(project, selector, kinds)
        self.objects[project] = [r for r in self.objects[project] if r not in deleted]
        return deleted

    def new_app_from_source(
        self,
        project: str,
        name: str,
        component_type: str,
        labels: Dict[str, str],
        annotations: Dict[str, str],
        git_url: Optional[str] = None
    ) -> str:
        for kind in COMPONENT_KINDS:
            self.objects[project].append(ResourceDescriptor(
                kind=kind, name=name, labels=dict(labels), annotations=dict(annotations)
            ))
        if git_url:
            source = {"type": "Git", "git": {"uri": git_url}}
        else:
            source = {"type": "Binary", "binary": {}}
        self.build_configs[name] = {
            "metadata": {"name": name, "labels": dict(labels), "annotations": dict(annotations)},
            "spec": {"source": source},
        }
        return f"Created objects for {name}"

    def get_build_config(self, project: str, name: str) -> dict:
        if name not in self.build_configs:
            raise UpstreamError(f"unable to get BuildConfig {name} in {project}: 404 Not Found")
        return self.build_configs[name]

    def start_build(self, project: str, name: str) -> str:
        self.builds.append((name, None))
        return f"{name}-{len(self.builds)}"

    def start_binary_build(self, project: str, name: str, directory: str) -> str:
        self.builds.append((name, directory))
        return f"{name}-{len(self.builds)}"

    def create_route(self, project: str, component: str, labels: Dict[str, str]) -> ResourceDescriptor:
        self._route_count += 1
        name = f"{component}-r{self._route_count}"
        route = ResourceDescriptor(
            kind="Route",
            name=name,
            labels=dict(labels),
            payload={"host": f"{name}-{project}.apps.example.com"},
        )
        self.objects[project].append(route)
        return route

    def delete_route(self, project: str, name: str) -> None:
        for r in self.objects[project]:
            if r.kind == "Route" and r.name == name:
                self.objects[project].remove(r)
                return
        raise UpstreamError(f"unable to delete route {name} in {project}: 404 Not Found")

    def list_routes(self, project: str, selector: str) -> List[ResourceDescriptor]:
        return self.list_resources(project, selector, kinds=("Route",))


@pytest.fixture
def platform():
    """Create an empty fake cluster with current project myproject."""
    return FakePlatform()


@pytest.fixture
def context_store(tmp_path):
    """Create a context store backed by a temporary file."""
    return ContextStore(tmp_path / "kubedev.yaml")


@pytest.fixture
def directory(platform):
    return ResourceDirectory(platform)


@pytest.fixture
def applications(platform, context_store, directory):
    return ApplicationService(platform, context_store, directory)


@pytest.fixture
def components(platform, context_store, directory, applications):
    return ComponentService(platform, context_store, directory, applications)


@pytest.fixture
def urls(platform, context_store, directory, applications, components):
    return URLService(platform, context_store, directory, applications, components)
