"""Local store for the active application and component of each project."""

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import ValidationError

from kubedev.core.errors import ConfigUnavailableError
from kubedev.core.models import ApplicationContext, ContextState

logger = logging.getLogger(__name__)


class ContextStore:
    """Reads and writes the kubedev context file.

    The file is loaded and rewritten as a whole on every access. There is
    no locking; the last writer wins.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the context store.

        Args:
            path: Location of the YAML context file
        """
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ContextState:
        """Load the whole context state.

        Returns:
            ContextState, empty when the file does not exist yet

        Raises:
            ConfigUnavailableError: If the file cannot be read or parsed
        """
        if not self._path.exists():
            return ContextState()

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return ContextState(**data)
        except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigUnavailableError(f"unable to read context file {self._path}: {e}") from e

    def save(self, state: ContextState) -> None:
        """Atomically replace the context file with the given state.

        Raises:
            ConfigUnavailableError: If the file cannot be written
        """
        tmp_path = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=".kubedev-")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(state.model_dump(), f, default_flow_style=False)
            os.replace(tmp_path, self._path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise ConfigUnavailableError(f"unable to write context file {self._path}: {e}") from e

    @staticmethod
    def _find(
        state: ContextState,
        application: str,
        project: str
    ) -> Optional[ApplicationContext]:
        for entry in state.active_applications:
            if entry.name == application and entry.project == project:
                return entry
        return None

    def get_active_component(self, application: str, project: str) -> str:
        """Get the active component of an application, "" if none."""
        entry = self._find(self.load(), application, project)
        return entry.active_component if entry else ""

    def set_active_component(self, name: str, application: str, project: str) -> None:
        """Set the active component of an application.

        An empty name clears the active component.
        """
        state = self.load()
        entry = self._find(state, application, project)
        if entry is None:
            if not name:
                return
            entry = ApplicationContext(name=application, project=project)
            state.active_applications.append(entry)
        entry.active_component = name
        self.save(state)
        logger.debug(f"Active component for {project}/{application} set to '{name}'")

    def get_active_application(self, project: str) -> str:
        """Get the active application of a project, "" if none."""
        for entry in self.load().active_applications:
            if entry.project == project and entry.active:
                return entry.name
        return ""

    def set_active_application(self, name: str, project: str) -> None:
        """Make an application the only active one in its project.

        An empty name leaves the project without an active application.
        """
        state = self.load()
        if name and self._find(state, name, project) is None:
            state.active_applications.append(ApplicationContext(name=name, project=project))

        for entry in state.active_applications:
            if entry.project == project:
                entry.active = entry.name == name

        self.save(state)
        logger.debug(f"Active application for {project} set to '{name}'")

    def list_applications(self, project: str) -> List[str]:
        """Names of the applications remembered for a project."""
        return [
            entry.name
            for entry in self.load().active_applications
            if entry.project == project
        ]

    def remove_application(self, name: str, project: str) -> None:
        """Forget an application and its active component."""
        state = self.load()
        state.active_applications = [
            entry for entry in state.active_applications
            if not (entry.name == name and entry.project == project)
        ]
        self.save(state)
