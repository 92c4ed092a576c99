"""Kubernetes client manager for kubedev.

Talks to an OpenShift cluster through the official kubernetes client.
OpenShift objects (image streams, build configs, routes) are reached
through CustomObjectsApi; build instantiation goes through the raw
ApiClient because it is a subresource POST.
"""

import io
import json
import logging
import os
import tarfile
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

import urllib3
from kubernetes import client, config
from kubernetes.client import AppsV1Api, CoreV1Api, CustomObjectsApi
from kubernetes.client.rest import ApiException

from kubedev.core.errors import NoCurrentProjectError, UpstreamError
from kubedev.core.models import ResourceDescriptor

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_NAMESPACE = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"

# kind -> (group, version, plural)
CUSTOM_KINDS = {
    "ImageStream": ("image.openshift.io", "v1", "imagestreams"),
    "BuildConfig": ("build.openshift.io", "v1", "buildconfigs"),
    "Route": ("route.openshift.io", "v1", "routes"),
}

# Objects created for every component by new_app_from_source
COMPONENT_KINDS = ("Service", "Deployment", "ImageStream", "BuildConfig")
ALL_KINDS = COMPONENT_KINDS + ("Route",)

BUILDER_NAMESPACE = "openshift"
INTERNAL_REGISTRY = "image-registry.openshift-image-registry.svc:5000"
DEFAULT_PORT = 8080
DEFAULT_PORT_NAME = "8080-tcp"


@contextmanager
def _upstream(operation: str) -> Iterator[None]:
    """Turn API and transport failures into UpstreamError."""
    try:
        yield
    except ApiException as e:
        raise UpstreamError(f"{operation}: {e.status} {e.reason}") from e
    except urllib3.exceptions.HTTPError as e:
        raise UpstreamError(f"{operation}: {e}") from e


def _archive_directory(directory: str) -> bytes:
    """Pack a directory into a gzipped tar archive."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        tar.add(directory, arcname=".")
    return buffer.getvalue()


class K8sClientManager:
    """Manages Kubernetes client connections and the objects kubedev works with.

    This class provides a centralized way to manage Kubernetes API clients
    with support for both local (kubeconfig) and in-cluster authentication.
    """

    def __init__(
        self,
        kubeconfig_path: Optional[str] = None,
        in_cluster: bool = False
    ) -> None:
        """Initialize the Kubernetes client manager.

        Args:
            kubeconfig_path: Path to kubeconfig file (for CLI/local usage)
            in_cluster: Use in-cluster config (when running inside a pod)
        """
        self._kubeconfig_path = kubeconfig_path
        self._in_cluster = in_cluster or os.getenv("KUBEDEV_IN_CLUSTER", "").lower() == "true"
        self._load_config()

    def _load_config(self) -> None:
        """Load Kubernetes configuration."""
        if self._in_cluster:
            # Running inside the cluster, use service account
            try:
                config.load_incluster_config()
            except config.ConfigException as e:
                raise UpstreamError(f"Failed to load in-cluster config: {e}") from e
        elif self._kubeconfig_path:
            try:
                config.load_kube_config(config_file=self._kubeconfig_path)
            except config.ConfigException as e:
                raise UpstreamError(
                    f"Failed to load kubeconfig from {self._kubeconfig_path}: {e}"
                ) from e
        else:
            # Try default kubeconfig location
            try:
                config.load_kube_config()
            except config.ConfigException as e:
                raise UpstreamError(f"Failed to load default kubeconfig: {e}") from e

    def get_core_v1_api(self) -> CoreV1Api:
        """Get CoreV1Api client for services."""
        return client.CoreV1Api()

    def get_apps_v1_api(self) -> AppsV1Api:
        """Get AppsV1Api client for deployments."""
        return client.AppsV1Api()

    def get_custom_objects_api(self) -> CustomObjectsApi:
        """Get CustomObjectsApi client for OpenShift resources."""
        return client.CustomObjectsApi()

    def get_api_client(self) -> client.ApiClient:
        """Get a raw ApiClient for subresource calls."""
        return client.ApiClient()

    def get_current_project(self) -> str:
        """Get the project (namespace) of the active context.

        Returns:
            Namespace name, "default" if the context does not set one

        Raises:
            NoCurrentProjectError: If there is no active context
        """
        if self._in_cluster:
            try:
                with open(SERVICE_ACCOUNT_NAMESPACE, "r", encoding="utf-8") as f:
                    return f.read().strip()
            except OSError as e:
                raise NoCurrentProjectError(f"unable to read service account namespace: {e}") from e

        try:
            _, active_context = config.list_kube_config_contexts(
                config_file=self._kubeconfig_path
            )
        except config.ConfigException as e:
            raise NoCurrentProjectError(f"unable to read kubeconfig contexts: {e}") from e

        if not active_context:
            raise NoCurrentProjectError("no active context in kubeconfig")

        return (active_context.get("context") or {}).get("namespace") or "default"

    @staticmethod
    def _descriptor(kind: str, obj: Dict[str, Any]) -> ResourceDescriptor:
        """Build a ResourceDescriptor from a serialized object."""
        metadata = obj.get("metadata") or {}
        payload = dict(obj.get("spec") or {})
        return ResourceDescriptor(
            kind=kind,
            name=metadata.get("name", ""),
            labels=metadata.get("labels") or {},
            annotations=metadata.get("annotations") or {},
            payload=payload,
        )

    def _list_kind(self, kind: str, project: str, selector: str) -> List[Dict[str, Any]]:
        if kind in ("Service", "Deployment"):
            if kind == "Service":
                items = self.get_core_v1_api().list_namespaced_service(
                    namespace=project,
                    label_selector=selector
                ).items
            else:
                items = self.get_apps_v1_api().list_namespaced_deployment(
                    namespace=project,
                    label_selector=selector
                ).items
            serializer = self.get_api_client()
            return [serializer.sanitize_for_serialization(item) for item in items]

        group, version, plural = CUSTOM_KINDS[kind]
        response = self.get_custom_objects_api().list_namespaced_custom_object(
            group=group,
            version=version,
            namespace=project,
            plural=plural,
            label_selector=selector
        )
        return response.get("items", [])

    def _delete_kind(self, kind: str, project: str, name: str) -> None:
        if kind == "Service":
            self.get_core_v1_api().delete_namespaced_service(name=name, namespace=project)
        elif kind == "Deployment":
            self.get_apps_v1_api().delete_namespaced_deployment(
                name=name,
                namespace=project,
                body=client.V1DeleteOptions(propagation_policy="Foreground")
            )
        else:
            group, version, plural = CUSTOM_KINDS[kind]
            self.get_custom_objects_api().delete_namespaced_custom_object(
                group=group,
                version=version,
                namespace=project,
                plural=plural,
                name=name
            )

    def list_resources(
        self,
        project: str,
        selector: str,
        kinds: Sequence[str] = COMPONENT_KINDS
    ) -> List[ResourceDescriptor]:
        """List objects of the given kinds matching a label selector.

        Args:
            project: Namespace to query
            selector: Label selector
            kinds: Object kinds to include

        Returns:
            Descriptors ordered by kind, then as returned by the API
        """
        resources = []
        for kind in kinds:
            with _upstream(f"unable to list {kind} objects in {project} matching '{selector}'"):
                for obj in self._list_kind(kind, project, selector):
                    resources.append(self._descriptor(kind, obj))
        logger.debug(f"Found {len(resources)} objects in {project} matching '{selector}'")
        return resources

    def get_label_values(
        self,
        project: str,
        label_key: str,
        selector: str,
        kinds: Sequence[str] = COMPONENT_KINDS
    ) -> List[str]:
        """Get the values of one label across objects matching a selector.

        Objects without the label are skipped. Duplicates are kept.
        """
        return [
            resource.labels[label_key]
            for resource in self.list_resources(project, selector, kinds)
            if label_key in resource.labels
        ]

    def delete_resources(
        self,
        project: str,
        selector: str,
        kinds: Sequence[str] = COMPONENT_KINDS
    ) -> List[ResourceDescriptor]:
        """Delete every object of the given kinds matching a label selector.

        Returns:
            Descriptors of the deleted objects
        """
        deleted = []
        for resource in self.list_resources(project, selector, kinds):
            with _upstream(f"unable to delete {resource.kind} {resource.name} in {project}"):
                try:
                    self._delete_kind(resource.kind, project, resource.name)
                except ApiException as e:
                    if e.status != 404:
                        raise
                    # Already gone
                    continue
            deleted.append(resource)
            logger.debug(f"Deleted {resource.kind} {resource.name} in {project}")
        return deleted

    def _builder_image(self, component_type: str) -> str:
        """Image stream tag of the builder for a component type, e.g. nodejs:latest."""
        if ":" in component_type:
            return component_type
        return f"{component_type}:latest"

    def _build_image_stream(
        self,
        name: str,
        labels: Dict[str, str],
        annotations: Dict[str, str]
    ) -> Dict[str, Any]:
        return {
            "apiVersion": "image.openshift.io/v1",
            "kind": "ImageStream",
            "metadata": {"name": name, "labels": labels, "annotations": annotations},
        }

    def _build_build_config(
        self,
        name: str,
        component_type: str,
        labels: Dict[str, str],
        annotations: Dict[str, str],
        git_url: Optional[str]
    ) -> Dict[str, Any]:
        """Build a BuildConfig with a Git source, or a Binary one when git_url is None."""
        if git_url:
            source = {"type": "Git", "git": {"uri": git_url}}
            triggers = [{"type": "ConfigChange"}]
        else:
            source = {"type": "Binary", "binary": {}}
            triggers = []

        return {
            "apiVersion": "build.openshift.io/v1",
            "kind": "BuildConfig",
            "metadata": {"name": name, "labels": labels, "annotations": annotations},
            "spec": {
                "source": source,
                "strategy": {
                    "type": "Source",
                    "sourceStrategy": {
                        "from": {
                            "kind": "ImageStreamTag",
                            "namespace": BUILDER_NAMESPACE,
                            "name": self._builder_image(component_type),
                        }
                    },
                },
                "output": {"to": {"kind": "ImageStreamTag", "name": f"{name}:latest"}},
                "triggers": triggers,
            },
        }

    def _build_deployment(
        self,
        project: str,
        name: str,
        labels: Dict[str, str],
        annotations: Dict[str, str]
    ) -> client.V1Deployment:
        """Build a Deployment that follows the component's image stream."""
        trigger = [{
            "from": {"kind": "ImageStreamTag", "name": f"{name}:latest"},
            "fieldPath": f"spec.template.spec.containers[?(@.name==\"{name}\")].image",
        }]
        pod_labels = dict(labels, deployment=name)

        container = client.V1Container(
            name=name,
            image=f"{INTERNAL_REGISTRY}/{project}/{name}:latest",
            ports=[client.V1ContainerPort(container_port=DEFAULT_PORT, protocol="TCP")],
        )

        return client.V1Deployment(
            metadata=client.V1ObjectMeta(
                name=name,
                namespace=project,
                labels=labels,
                annotations=dict(annotations, **{"image.openshift.io/triggers": json.dumps(trigger)})
            ),
            spec=client.V1DeploymentSpec(
                replicas=1,
                selector=client.V1LabelSelector(match_labels={"deployment": name}),
                template=client.V1PodTemplateSpec(
                    metadata=client.V1ObjectMeta(labels=pod_labels),
                    spec=client.V1PodSpec(containers=[container])
                )
            )
        )

    def _build_service(
        self,
        project: str,
        name: str,
        labels: Dict[str, str],
        annotations: Dict[str, str]
    ) -> client.V1Service:
        return client.V1Service(
            metadata=client.V1ObjectMeta(
                name=name,
                namespace=project,
                labels=labels,
                annotations=annotations
            ),
            spec=client.V1ServiceSpec(
                selector={"deployment": name},
                ports=[
                    client.V1ServicePort(
                        name=DEFAULT_PORT_NAME,
                        port=DEFAULT_PORT,
                        target_port=DEFAULT_PORT,
                        protocol="TCP"
                    )
                ],
                type="ClusterIP"
            )
        )

    def new_app_from_source(
        self,
        project: str,
        name: str,
        component_type: str,
        labels: Dict[str, str],
        annotations: Dict[str, str],
        git_url: Optional[str] = None
    ) -> str:
        """Create the objects that make up a component.

        Args:
            project: Target namespace
            name: Component name, used for every object
            component_type: Builder image stream, e.g. nodejs or nodejs:8
            labels: Labels to stamp on every object
            annotations: Annotations to stamp on every object
            git_url: Git repository to build from; binary source when None

        Returns:
            Summary of the created objects

        Raises:
            UpstreamError: If any object cannot be created; the message lists
                the objects that were already created
        """
        custom_api = self.get_custom_objects_api()
        created: List[str] = []

        def create(kind: str, func, *args, **kwargs) -> None:
            already = ", ".join(created) or "none"
            with _upstream(f"unable to create {kind} {name} in {project} (already created: {already})"):
                func(*args, **kwargs)
            created.append(f"{kind}/{name}")

        group, version, plural = CUSTOM_KINDS["ImageStream"]
        create(
            "ImageStream", custom_api.create_namespaced_custom_object,
            group=group, version=version, namespace=project, plural=plural,
            body=self._build_image_stream(name, labels, annotations)
        )
        group, version, plural = CUSTOM_KINDS["BuildConfig"]
        create(
            "BuildConfig", custom_api.create_namespaced_custom_object,
            group=group, version=version, namespace=project, plural=plural,
            body=self._build_build_config(name, component_type, labels, annotations, git_url)
        )
        create(
            "Deployment", self.get_apps_v1_api().create_namespaced_deployment,
            namespace=project,
            body=self._build_deployment(project, name, labels, annotations)
        )
        create(
            "Service", self.get_core_v1_api().create_namespaced_service,
            namespace=project,
            body=self._build_service(project, name, labels, annotations)
        )

        logger.info(f"Created {', '.join(created)} in {project}")
        return f"Created {', '.join(created)}"

    def get_build_config(self, project: str, name: str) -> Dict[str, Any]:
        """Get the BuildConfig of a component as a dict."""
        group, version, plural = CUSTOM_KINDS["BuildConfig"]
        with _upstream(f"unable to get BuildConfig {name} in {project}"):
            return self.get_custom_objects_api().get_namespaced_custom_object(
                group=group,
                version=version,
                namespace=project,
                plural=plural,
                name=name
            )

    def _instantiate(
        self,
        project: str,
        name: str,
        subresource: str,
        body: Any,
        content_type: str
    ) -> str:
        response = self.get_api_client().call_api(
            "/apis/build.openshift.io/v1/namespaces/{namespace}/buildconfigs/{name}/" + subresource,
            "POST",
            path_params={"namespace": project, "name": name},
            header_params={"Content-Type": content_type, "Accept": "application/json"},
            body=body,
            response_type="object",
            auth_settings=["BearerToken"],
            _return_http_data_only=True
        )
        build_name = ((response or {}).get("metadata") or {}).get("name", "")
        logger.info(f"Started build {build_name} for {name} in {project}")
        return build_name

    def start_build(self, project: str, name: str) -> str:
        """Start a build of a component from its recorded source.

        Returns:
            Name of the started build
        """
        build_request = {
            "kind": "BuildRequest",
            "apiVersion": "build.openshift.io/v1",
            "metadata": {"name": name},
        }
        with _upstream(f"unable to start build for {name} in {project}"):
            return self._instantiate(project, name, "instantiate", build_request, "application/json")

    def start_binary_build(self, project: str, name: str, directory: str) -> str:
        """Start a build of a component using a local directory as input.

        Returns:
            Name of the started build
        """
        try:
            archive = _archive_directory(directory)
        except OSError as e:
            raise UpstreamError(f"unable to archive {directory}: {e}") from e

        logger.debug(f"Uploading {len(archive)} bytes from {directory} for {name}")
        with _upstream(f"unable to start binary build for {name} in {project}"):
            return self._instantiate(
                project, name, "instantiatebinary", archive, "application/octet-stream"
            )

    def create_route(
        self,
        project: str,
        component: str,
        labels: Dict[str, str]
    ) -> ResourceDescriptor:
        """Expose a component's service through a Route.

        The route name is generated by the cluster from the component name
        and the host is assigned by the cluster.
        """
        group, version, plural = CUSTOM_KINDS["Route"]
        route = {
            "apiVersion": f"{group}/{version}",
            "kind": "Route",
            "metadata": {"generateName": f"{component}-", "labels": labels},
            "spec": {
                "to": {"kind": "Service", "name": component},
                "port": {"targetPort": DEFAULT_PORT_NAME},
            },
        }
        with _upstream(f"unable to create route for {component} in {project}"):
            created = self.get_custom_objects_api().create_namespaced_custom_object(
                group=group,
                version=version,
                namespace=project,
                plural=plural,
                body=route
            )
        return self._descriptor("Route", created)

    def delete_route(self, project: str, name: str) -> None:
        """Delete a Route by name."""
        with _upstream(f"unable to delete route {name} in {project}"):
            self._delete_kind("Route", project, name)

    def list_routes(self, project: str, selector: str) -> List[ResourceDescriptor]:
        """List Routes matching a label selector."""
        return self.list_resources(project, selector, kinds=("Route",))
