"""Component inlining for Tessera.

A component is an HTML fragment stored in the components directory and
referenced from the root document with ``<component src="name.html"></component>``.
Each reference is replaced by the fragment's text in a single pass, so a
fragment's own component references are left as written.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from .utils import is_within

logger = logging.getLogger(__name__)

COMPONENT_RE = re.compile(
    r"""<component\s+src\s*=\s*(?P<quote>["'])(?P<src>.*?)(?P=quote)\s*>\s*</component\s*>""",
    re.IGNORECASE,
)


class ComponentError(Exception):
    """Error raised when a component reference cannot be resolved or read.

    Attributes:
        name: The component name as written in the src attribute.
        path: The file path that was looked up.
    """

    def __init__(self, name: str, path: Path, reason: str = "not found"):
        self.name = name
        self.path = path
        super().__init__(f"component '{name}' {reason}: {path}")


def resolve_component(components_dir: Path, name: str) -> Path:
    """Return the file backing a component reference.

    Args:
        components_dir: Directory holding component fragments.
        name: Value of the reference's src attribute.

    Returns:
        Path to the fragment file.

    Raises:
        ComponentError: If the name escapes the components directory
            or the file does not exist.
    """
    path = (components_dir / name.strip().lstrip("/")).resolve()
    if not is_within(path, components_dir):
        raise ComponentError(name, path, "is outside the components directory")
    if not path.is_file():
        raise ComponentError(name, path)
    return path


def inline_components(html: str, components_dir: Path) -> tuple[str, list[str]]:
    """Replace component references with the fragments they name.

    Args:
        html: Root document markup.
        components_dir: Directory holding component fragments.

    Returns:
        Tuple of (markup with components inlined, names inlined in order).

    Raises:
        ComponentError: If a referenced fragment cannot be found or is not
            valid UTF-8.
    """
    inlined: list[str] = []

    def repl(match: re.Match) -> str:
        name = match.group("src")
        path = resolve_component(components_dir, name)
        try:
            fragment = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ComponentError(name, path, f"is not valid UTF-8 ({exc.reason})") from exc
        logger.debug("Inlining component %s", name)
        inlined.append(name)
        return fragment

    return COMPONENT_RE.sub(repl, html), inlined
