import importlib.util
import logging
from functools import cache
from pathlib import Path
from types import ModuleType

from formwork.config import FormworkConfig
from formwork.exceptions import ProjectError
from formwork.stack.builder import StackBuilder

logger = logging.getLogger(__name__)

APP_FILE = "formwork_app.py"


@cache
def get_project_root() -> Path:
    """Find and cache the project root by looking for formwork_app.py.
    Raises ProjectError if not found.
    """
    current = Path.cwd().resolve()
    while current != current.parent:
        if (current / APP_FILE).exists():
            return current
        current = current.parent

    raise ProjectError(f"Could not find project root: no {APP_FILE} found in parent directories")


def load_app(root: Path | None = None) -> ModuleType:
    app_path = (root or get_project_root()) / APP_FILE
    logger.debug("Loading app from %s", app_path)

    spec = importlib.util.spec_from_file_location("formwork_app", app_path)
    if spec is None or spec.loader is None:
        raise ProjectError(f"Cannot load {app_path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def get_stack_builder(app: ModuleType) -> StackBuilder:
    """Call the app's ``build_stack()``, which has to return a StackBuilder."""
    build_stack = getattr(app, "build_stack", None)
    if not callable(build_stack):
        raise ProjectError(f"{APP_FILE} must define a build_stack() function")

    stack_builder = build_stack()
    if not isinstance(stack_builder, StackBuilder):
        raise ProjectError(
            f"build_stack() must return a StackBuilder, got {type(stack_builder).__name__}"
        )
    return stack_builder


def get_config(app: ModuleType) -> FormworkConfig:
    config = getattr(app, "config", None)
    if config is None:
        return FormworkConfig()
    if not isinstance(config, FormworkConfig):
        raise ProjectError(f"'config' in {APP_FILE} must be a FormworkConfig")
    return config
