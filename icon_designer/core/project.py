import json
import logging
from pathlib import Path

from icon_designer import __version__
from icon_designer.core.errors import ValidationError
from icon_designer.core.models import LayerStack

logger = logging.getLogger(__name__)


def save_project(stack: LayerStack, path: str | Path, name: str | None = None) -> Path:
    p = Path(path)
    data = {
        "version": __version__,
        "name": name or p.stem,
        **stack.to_dict(),
    }
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(data, indent=2), encoding="utf-8")
    logger.info("Saved project to %s", p)
    return p


def load_project(path: str | Path) -> LayerStack:
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Project file {p} is not valid JSON: {exc}") from exc
    stack = LayerStack.from_dict(data)
    logger.info("Loaded project %s", p)
    return stack
