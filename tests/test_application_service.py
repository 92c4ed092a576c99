"""Tests for the application service."""

import pytest

from kubedev.core.application_service import ApplicationService
from kubedev.core.errors import (
    ApplicationNotFoundError,
    NoCurrentApplicationError,
    NoCurrentProjectError,
)
from kubedev.core.labels import APPLICATION_LABEL


def test_no_current_application(applications: ApplicationService) -> None:
    """Test that an unresolvable application is an error, not an empty name."""
    with pytest.raises(NoCurrentApplicationError):
        applications.get_current()


def test_resolve_prefers_explicit_name(applications: ApplicationService) -> None:
    """Test the resolution order: argument first, then context."""
    applications.create("demo")
    assert applications.resolve("other") == "other"
    assert applications.resolve() == "demo"


def test_create_makes_application_active(applications: ApplicationService, context_store) -> None:
    """Test that creating an application records it as active."""
    applications.create("demo")
    applications.create("demo")

    assert applications.get_current() == "demo"
    assert context_store.list_applications("myproject") == ["demo"]


def test_get_current_or_default(applications: ApplicationService, context_store) -> None:
    """Test that the default application is recorded on first use."""
    assert applications.get_current_or_default() == "app"
    assert context_store.get_active_application("myproject") == "app"


def test_custom_default_application(platform, context_store, directory) -> None:
    """Test that the default application name is configurable."""
    service = ApplicationService(platform, context_store, directory, default_application="sandbox")
    assert service.get_current_or_default() == "sandbox"


def test_exists_follows_cluster_labels(applications: ApplicationService, components) -> None:
    """Test that an application exists only once objects carry its label."""
    applications.create("demo")
    assert not applications.exists("demo")

    components.create_from_git("api", "nodejs", "https://example.com/r.git")

    assert applications.exists("demo")


def test_ensure_is_idempotent(applications: ApplicationService) -> None:
    """Test that ensure creates only missing applications."""
    assert applications.ensure("demo") is True
    assert applications.get_current() == "demo"


def test_list_merges_cluster_and_local(applications: ApplicationService, components) -> None:
    """Test that listing shows cluster and locally created applications."""
    applications.create("shop")
    components.create_from_git("api", "nodejs", "https://example.com/r.git")
    applications.create("empty")

    listed = {app.name: app.active for app in applications.list()}

    assert listed == {"shop": False, "empty": True}


def test_set_current(applications: ApplicationService) -> None:
    """Test switching between known applications."""
    applications.create("demo")
    applications.create("shop")

    applications.set_current("demo")

    assert applications.get_current() == "demo"


def test_set_current_unknown(applications: ApplicationService) -> None:
    """Test that unknown applications cannot be selected."""
    with pytest.raises(ApplicationNotFoundError) as exc:
        applications.set_current("ghost")
    assert "unable to set current application ghost" in str(exc.value)


def test_delete_removes_objects_and_context(
    applications: ApplicationService, components, urls, platform, directory, context_store
) -> None:
    """Test that deleting an application removes everything labeled with it."""
    applications.create("demo")
    components.create_from_git("api", "nodejs", "https://example.com/r.git")
    urls.create("api")

    deleted = applications.delete("demo")

    assert {r.kind for r in deleted} == {"Service", "Deployment", "ImageStream", "BuildConfig", "Route"}
    assert platform.objects["myproject"] == []
    assert "demo" not in directory.list_names("myproject", APPLICATION_LABEL, APPLICATION_LABEL)
    assert context_store.list_applications("myproject") == []


def test_routes_keep_application_alive(
    applications: ApplicationService, components, urls, platform, context_store
) -> None:
    """Test that routes left behind by a deleted component still make up the application."""
    applications.create("demo")
    components.create_from_git("api", "nodejs", "https://example.com/r.git")
    route = urls.create("api")
    components.delete("api")
    context_store.remove_application("demo", "myproject")

    assert [r.kind for r in platform.objects["myproject"]] == ["Route"]
    assert applications.exists("demo")
    assert [app.name for app in applications.list()] == ["demo"]

    deleted = applications.delete("demo")

    assert [(r.kind, r.name) for r in deleted] == [("Route", route.name)]
    assert platform.objects["myproject"] == []
    assert not applications.exists("demo")


def test_delete_unknown(applications: ApplicationService) -> None:
    """Test that deleting an unknown application fails."""
    with pytest.raises(ApplicationNotFoundError):
        applications.delete("ghost")


def test_project_errors_propagate(applications: ApplicationService, platform) -> None:
    """Test that a missing project is reported as such."""
    platform.project = None
    with pytest.raises(NoCurrentProjectError):
        applications.get_current()
