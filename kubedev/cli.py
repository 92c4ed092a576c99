"""CLI interface for kubedev."""

from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from kubedev import __version__
from kubedev.config import settings
from kubedev.core.application_service import ApplicationService
from kubedev.core.component_service import ComponentService
from kubedev.core.context_store import ContextStore
from kubedev.core.errors import KubedevError
from kubedev.core.k8s_client import K8sClientManager
from kubedev.core.resource_directory import ResourceDirectory
from kubedev.core.url_service import URLService
from kubedev.logging_config import setup_logging

console = Console()


class Services:
    """Services shared by all commands, built on first use.

    Building the platform client loads the kubeconfig, so it is deferred
    until a command actually needs the cluster.
    """

    def __init__(
        self,
        kubeconfig: Optional[str] = None,
        platform=None,
        context_store: Optional[ContextStore] = None
    ) -> None:
        self._kubeconfig = kubeconfig
        self._platform = platform
        self.context_store = context_store or ContextStore(settings.context_path)
        self._applications: Optional[ApplicationService] = None
        self._components: Optional[ComponentService] = None
        self._urls: Optional[URLService] = None

    @property
    def platform(self) -> K8sClientManager:
        if self._platform is None:
            self._platform = K8sClientManager(
                kubeconfig_path=self._kubeconfig or settings.kubeconfig_path,
                in_cluster=settings.in_cluster
            )
        return self._platform

    @property
    def applications(self) -> ApplicationService:
        if self._applications is None:
            self._applications = ApplicationService(
                self.platform,
                self.context_store,
                ResourceDirectory(self.platform),
                default_application=settings.default_application
            )
        return self._applications

    @property
    def components(self) -> ComponentService:
        if self._components is None:
            self._components = ComponentService(
                self.platform, self.context_store, applications=self.applications
            )
        return self._components

    @property
    def urls(self) -> URLService:
        if self._urls is None:
            self._urls = URLService(
                self.platform,
                self.context_store,
                applications=self.applications,
                components=self.components
            )
        return self._urls


pass_services = click.make_pass_decorator(Services)


def fail(message: str, error: KubedevError) -> None:
    """Print an error and exit non-zero."""
    console.print(f"[bold red]✗[/bold red] {message}: {escape(str(error))}")
    raise click.Abort()


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--kubeconfig",
    "-k",
    default=None,
    help="Path to kubeconfig file (uses default if not specified)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs")
@click.pass_context
def main(ctx: click.Context, kubeconfig: str | None, verbose: bool) -> None:
    """Kubedev - develop applications on OpenShift, one component at a time."""
    setup_logging("DEBUG" if verbose else settings.log_level)
    if ctx.obj is None:
        ctx.obj = Services(kubeconfig=kubeconfig)


# Project

@main.group()
def project() -> None:
    """Show the project commands run against."""


@project.command("get")
@click.option("--short", "-q", is_flag=True, help="Print only the project name")
@pass_services
def project_get(services: Services, short: bool) -> None:
    """Show the current project."""
    try:
        name = services.platform.get_current_project()
    except KubedevError as e:
        fail("Unable to get current project", e)

    if short:
        click.echo(name)
    else:
        console.print(f"The current project is: [cyan]{name}[/cyan]")


# Application

@main.group()
def application() -> None:
    """Perform application operations."""


@application.command("create")
@click.argument("name")
@pass_services
def application_create(services: Services, name: str) -> None:
    """Create an application and make it active."""
    try:
        services.applications.create(name)
    except KubedevError as e:
        fail("Application creation failed", e)
    console.print(f"[bold green]✓[/bold green] Application [cyan]{name}[/cyan] created and set as active")


@application.command("get")
@click.option("--short", "-q", is_flag=True, help="Print only the application name")
@pass_services
def application_get(services: Services, short: bool) -> None:
    """Show the active application."""
    try:
        name = services.applications.get_current()
    except KubedevError as e:
        fail("Unable to get current application", e)

    if short:
        click.echo(name)
    else:
        console.print(f"The current application is: [cyan]{name}[/cyan]")


@application.command("set")
@click.argument("name")
@pass_services
def application_set(services: Services, name: str) -> None:
    """Make an application active."""
    try:
        services.applications.set_current(name)
    except KubedevError as e:
        fail("Unable to switch application", e)
    console.print(f"Switched to application: [cyan]{name}[/cyan]")


@application.command("list")
@pass_services
def application_list(services: Services) -> None:
    """List applications in the current project."""
    try:
        apps = services.applications.list()
    except KubedevError as e:
        fail("Unable to list applications", e)

    if not apps:
        console.print("[yellow]No applications found[/yellow]")
        return

    table = Table(title="Applications")
    table.add_column("Active", style="green")
    table.add_column("Name", style="cyan")
    for app in apps:
        table.add_row("*" if app.active else "", app.name)
    console.print(table)


@application.command("delete")
@click.argument("name")
@click.option("--force", "-f", is_flag=True, help="Delete without prompting")
@pass_services
def application_delete(services: Services, name: str, force: bool) -> None:
    """Delete an application and every object in it."""
    if not force:
        click.confirm(f"Are you sure you want to delete application {name}?", abort=True)
    try:
        deleted = services.applications.delete(name)
    except KubedevError as e:
        fail("Application deletion failed", e)
    console.print(f"[bold green]✓[/bold green] Deleted application {name} ({len(deleted)} objects)")


# Component

@main.group()
def component() -> None:
    """Perform component operations."""


@component.command("create")
@click.argument("name")
@click.option("--type", "-t", "component_type", required=True, help="Builder type, e.g. nodejs")
@click.option("--git", "git_url", default=None, help="Git repository to build from")
@click.option(
    "--local",
    "local_dir",
    default=None,
    type=click.Path(exists=True, file_okay=False),
    help="Local directory to build from",
)
@pass_services
def component_create(
    services: Services,
    name: str,
    component_type: str,
    git_url: str | None,
    local_dir: str | None
) -> None:
    """Create a component in the active application."""
    if git_url and local_dir:
        raise click.UsageError("--git and --local are mutually exclusive")

    try:
        if git_url:
            output = services.components.create_from_git(name, component_type, git_url)
        else:
            console.print("[dim]Please wait, building component...[/dim]")
            output = services.components.create_from_dir(name, component_type, local_dir or ".")
    except KubedevError as e:
        fail("Component creation failed", e)

    console.print(output, markup=False)
    console.print(f"[bold green]✓[/bold green] Component [cyan]{name}[/cyan] created and set as active")


@component.command("get")
@click.option("--short", "-q", is_flag=True, help="Print only the component name")
@pass_services
def component_get(services: Services, short: bool) -> None:
    """Show the active component."""
    try:
        name = services.components.get_current()
    except KubedevError as e:
        fail("Unable to get current component", e)

    if short:
        click.echo(name)
    else:
        console.print(f"The current component is: [cyan]{name}[/cyan]")


@component.command("set")
@click.argument("name")
@pass_services
def component_set(services: Services, name: str) -> None:
    """Make a component active."""
    try:
        services.components.set_current(name)
    except KubedevError as e:
        fail("Unable to switch component", e)
    console.print(f"Switched to component: [cyan]{name}[/cyan]")


@component.command("list")
@click.option("--application", "-a", default=None, help="Application to list (default: active)")
@pass_services
def component_list(services: Services, application: str | None) -> None:
    """List components of an application."""
    try:
        components = services.components.list(application)
    except KubedevError as e:
        fail("Unable to list components", e)

    if not components:
        console.print("[yellow]No components found[/yellow]")
        return

    table = Table(title="Components")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="magenta")
    for info in components:
        table.add_row(info.name, info.type)
    console.print(table)


@component.command("delete")
@click.argument("name", required=False)
@click.option("--include-urls", is_flag=True, help="Also delete the component's URLs")
@click.option("--force", "-f", is_flag=True, help="Delete without prompting")
@pass_services
def component_delete(
    services: Services,
    name: str | None,
    include_urls: bool,
    force: bool
) -> None:
    """Delete a component (default: the active one)."""
    try:
        name = services.components.resolve(name)
        if not force:
            click.confirm(f"Are you sure you want to delete component {name}?", abort=True)
        deleted = services.components.delete(name, include_urls=include_urls)
    except KubedevError as e:
        fail("Component deletion failed", e)
    console.print(f"[bold green]✓[/bold green] Deleted component {name} ({len(deleted)} objects)")


@component.command("push")
@click.argument("name", required=False)
@click.option(
    "--local",
    "local_dir",
    default=None,
    type=click.Path(exists=True, file_okay=False),
    help="Upload this directory instead of the recorded source",
)
@pass_services
def component_push(services: Services, name: str | None, local_dir: str | None) -> None:
    """Build a component again (default: the active one)."""
    try:
        build = services.components.push(name, local_dir)
    except KubedevError as e:
        fail("Push failed", e)
    console.print(f"[bold green]✓[/bold green] Started build {build}")


# URL

@main.group()
def url() -> None:
    """Expose components to the outside world."""


@url.command("create")
@click.argument("component_name", required=False)
@pass_services
def url_create(services: Services, component_name: str | None) -> None:
    """Create a URL for a component (default: the active one)."""
    try:
        created = services.urls.create(component_name)
    except KubedevError as e:
        fail("URL creation failed", e)
    console.print(f"URL created for component: [cyan]{created.component}[/cyan]\n")
    console.print(f"{created.name} - {created.url}", markup=False)


@url.command("delete")
@click.argument("name")
@pass_services
def url_delete(services: Services, name: str) -> None:
    """Delete a URL by name."""
    try:
        services.urls.delete(name)
    except KubedevError as e:
        fail("URL deletion failed", e)
    console.print(f"Deleted URL: {name}", markup=False)


@url.command("list")
@click.option("--application", "-a", default=None, help="List URLs for application")
@click.option("--component", "-c", "component_name", default="", help="List URLs for component")
@pass_services
def url_list(services: Services, application: str | None, component_name: str) -> None:
    """List URLs of an application or one of its components."""
    try:
        urls = services.urls.list(component_name, application)
    except KubedevError as e:
        fail("Unable to list URLs", e)

    if not urls:
        console.print("[yellow]No URLs found[/yellow]")
        return

    table = Table(title="URLs")
    table.add_column("Name", style="cyan")
    table.add_column("Component", style="magenta")
    table.add_column("URL", style="green")
    for info in urls:
        table.add_row(info.name, info.component, info.url)
    console.print(table)


if __name__ == "__main__":
    main()
