"""Error types raised by the kubedev core."""

from contextlib import contextmanager
from typing import Iterator


class KubedevError(Exception):
    """Base class for all kubedev errors."""

    def with_context(self, context: str) -> "KubedevError":
        """Return a new error of the same kind prefixed with context.

        Args:
            context: What was being attempted, e.g. "unable to delete component api"

        Returns:
            Error of the same class carrying the combined message
        """
        return type(self)(f"{context}: {self}")


class NotFoundError(KubedevError):
    """An entity or current-context value could not be resolved."""


class NoCurrentProjectError(NotFoundError):
    pass


class NoCurrentApplicationError(NotFoundError):
    pass


class NoCurrentComponentError(NotFoundError):
    pass


class ApplicationNotFoundError(NotFoundError):
    pass


class ComponentNotFoundError(NotFoundError):
    pass


class InconsistentLabelError(KubedevError):
    """Resources of one component disagree on a label value."""


class UnsupportedSourceError(KubedevError):
    """A build source is neither a git repository nor a local binary upload."""


class UpstreamError(KubedevError):
    """A call to the cluster API failed."""


class ConfigUnavailableError(KubedevError):
    """The local context file cannot be read or written."""


@contextmanager
def error_context(context: str) -> Iterator[None]:
    """Prefix any kubedev error raised inside the block with context."""
    try:
        yield
    except KubedevError as e:
        raise e.with_context(context) from e
