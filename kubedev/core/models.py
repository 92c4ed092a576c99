"""Pydantic models for kubedev."""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


# Cluster Resource Models

class ResourceDescriptor(BaseModel):
    """A single labeled object fetched from the cluster."""

    kind: str = Field(..., description="Object kind, e.g. Service or Route")
    name: str = Field(..., description="Object name")
    labels: Dict[str, str] = Field(default_factory=dict, description="Object labels")
    annotations: Dict[str, str] = Field(default_factory=dict, description="Object annotations")
    payload: Dict[str, Any] = Field(
        default_factory=dict,
        description="Kind-specific data, e.g. the host of a Route"
    )


# Entity Models

class ApplicationInfo(BaseModel):
    """An application visible in the current project."""

    name: str = Field(..., description="Application name")
    active: bool = Field(default=False, description="Whether this is the active application")


class ComponentInfo(BaseModel):
    """A component inside an application."""

    name: str = Field(..., description="Component name")
    type: str = Field(..., description="Builder image type, e.g. nodejs")


class ComponentSource(BaseModel):
    """Where a component's source code comes from."""

    source_type: str = Field(..., description="Source type: git or local")
    location: str = Field(..., description="Git URI or local directory path")


class URLInfo(BaseModel):
    """An externally reachable route bound to a component."""

    name: str = Field(..., description="Route name assigned by the cluster")
    url: str = Field(..., description="Host assigned by the cluster")
    component: str = Field(default="", description="Component the route points to")


# Context Models

class ApplicationContext(BaseModel):
    """Locally remembered state for one application in one project."""

    name: str = Field(..., description="Application name")
    project: str = Field(..., description="Project (namespace) name")
    active: bool = Field(default=False, description="Active application of its project")
    active_component: str = Field(default="", description="Active component, empty if none")


class ContextState(BaseModel):
    """Whole content of the local context file."""

    active_applications: List[ApplicationContext] = Field(
        default_factory=list,
        description="Known applications across projects"
    )
