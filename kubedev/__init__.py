"""Kubedev - manage applications and components on OpenShift through labels."""

__version__ = "0.1.0"
