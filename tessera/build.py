"""Site building functionality for Tessera.

This module contains the core logic for assembling a site from its sources.
A build runs these steps in order:

1. Inline component fragments into the root document.
2. Minify the resulting markup.
3. Resize and compress every image the markup requests at an explicit size.
4. Copy the assets directory and the root stylesheet and script.
5. Compress the images that step 3 did not write.

Key functions:
- build_site: Main function to build the entire site.
- load_config: Loads build configuration from tessera.yaml.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .assets import AssetPipeline
from .components import ComponentError, inline_components
from .html_utils import ImageRef, find_sized_images, minify_markup
from .images import EncodeOptions, resize_image
from .utils import ensure_clean_dir, is_within

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "tessera.yaml"


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


class ConfigError(Exception):
    """Invalid value in tessera.yaml."""


DEFAULT_CONFIG: dict[str, Any] = {
    "src_dir": "src",
    "output_dir": "dist",
    "index": "index.html",
    "components_dir": "components",
    "images_dir": "images",
    "assets_dir": "assets",
    "root_files": ["styles.css", "script.js"],
    "clean": True,
    "jpeg_quality": 75,
    "png_compress_level": 9,
    "webp_quality": 80,
    "minify_css": True,
    "minify_js": True,
    "keep_comments": False,
    "minify_static": False,
}


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        output_dir: Directory where the site was built.
        components: Component names inlined into the root document.
        resized: Images written at the size their tags request.
        compressed: Images compressed at their original size.
        copied: Static files copied into the output.
    """

    output_dir: Path
    components: list[str] = field(default_factory=list)
    resized: list[Path] = field(default_factory=list)
    compressed: list[Path] = field(default_factory=list)
    copied: list[Path] = field(default_factory=list)


def load_config(project_root: Path) -> dict[str, Any]:
    """Load build configuration from tessera.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.

    Raises:
        ConfigError: If the file is not valid YAML or a known key holds a
            value of the wrong type.
    """
    config_path = project_root / CONFIG_FILENAME
    config = DEFAULT_CONFIG.copy()
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"{config_path}: {exc}") from exc
        if isinstance(loaded, dict):
            config.update(
                (key, value) for key, value in loaded.items() if key in DEFAULT_CONFIG
            )
    _validate_config(config)
    return config


def _validate_config(config: dict[str, Any]) -> None:
    for key, default in DEFAULT_CONFIG.items():
        value = config[key]
        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise ConfigError(f"{key} must be true or false, got {value!r}")
        elif isinstance(default, int):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{key} must be an integer, got {value!r}")
        elif isinstance(default, list):
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"{key} must be a list of file names, got {value!r}")
        elif not isinstance(value, str) or not value:
            raise ConfigError(f"{key} must be a non-empty string, got {value!r}")

    _check_range(config, "jpeg_quality", 1, 95)
    _check_range(config, "png_compress_level", 0, 9)
    _check_range(config, "webp_quality", 0, 100)


def _check_range(config: dict[str, Any], key: str, low: int, high: int) -> None:
    if not low <= config[key] <= high:
        raise ConfigError(f"{key} must be between {low} and {high}, got {config[key]}")


def build_site(
    project_root: Path,
    src_dir: Path | None = None,
    output_dir: Path | None = None,
    clean: bool | None = None,
) -> BuildResult:
    """Build the site.

    Args:
        project_root: Root directory of the project.
        src_dir: Optional source directory instead of config src_dir.
        output_dir: Optional output directory instead of config output_dir.
        clean: Whether to wipe the output directory first; defaults to config.

    Returns:
        BuildResult describing what was written.

    Raises:
        FileNotFoundError: If the source directory does not exist.
        BuildError: If the root document or a component cannot be read.
        ConfigError: If the output directory contains the sources.
    """
    config = load_config(project_root)
    src_dir = src_dir or project_root / config["src_dir"]
    output_dir = output_dir or project_root / config["output_dir"]
    if clean is None:
        clean = config["clean"]

    if not src_dir.is_dir():
        raise FileNotFoundError(f"Expected source directory at {src_dir}")
    _check_output_dir(project_root, src_dir, output_dir)

    if clean:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    options = EncodeOptions(
        jpeg_quality=config["jpeg_quality"],
        png_compress_level=config["png_compress_level"],
        webp_quality=config["webp_quality"],
    )
    result = BuildResult(output_dir=output_dir)

    html, result.components = _assemble_html(src_dir, config)
    minified = minify_markup(
        html,
        minify_css=config["minify_css"],
        minify_js=config["minify_js"],
        keep_comments=config["keep_comments"],
    )

    result.resized = _resize_images(src_dir, output_dir, find_sized_images(minified), options)
    _write_index(output_dir, config["index"], minified)

    pipeline = AssetPipeline(
        src_dir,
        output_dir,
        assets_dir_name=config["assets_dir"],
        images_dir_name=config["images_dir"],
        root_files=config["root_files"],
        encode_options=options,
        minify_static=config["minify_static"],
    )
    result.copied, result.compressed = pipeline.run(written=result.resized)
    logger.info("Build completed!")
    return result


def _check_output_dir(project_root: Path, src_dir: Path, output_dir: Path) -> None:
    """Refuse an output directory that would hold the sources.

    Cleaning such a directory would delete the site before it is read.
    """
    for protected in (src_dir, project_root):
        if is_within(protected, output_dir):
            raise ConfigError(
                f"Output directory {output_dir} must not contain {protected}"
            )


def _assemble_html(src_dir: Path, config: dict[str, Any]) -> tuple[str, list[str]]:
    """Read the root document and inline its components.

    Returns:
        Tuple of (assembled markup, names of inlined components).
    """
    index_path = src_dir / config["index"]
    try:
        html = index_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise BuildError(index_path, "Root document not found", exc) from exc
    except UnicodeDecodeError as exc:
        raise BuildError(index_path, f"Root document is not valid UTF-8: {exc}", exc) from exc

    components_dir = src_dir / config["components_dir"]
    try:
        return inline_components(html, components_dir)
    except ComponentError as exc:
        raise BuildError(index_path, f"Bad component: {exc}", exc) from exc


def _resize_images(
    src_dir: Path,
    output_dir: Path,
    refs: list[ImageRef],
    options: EncodeOptions,
) -> list[Path]:
    """Write a resized copy of every sized image whose source exists.

    Args:
        src_dir: Site source directory.
        output_dir: Build output directory.
        refs: Images requested by the markup, in document order.
        options: Encoder settings.

    Returns:
        Output paths written, without duplicates.
    """
    written: list[Path] = []
    sizes: dict[str, tuple[int, int]] = {}
    for ref in refs:
        source = src_dir / ref.src
        if not is_within(source, src_dir):
            logger.warning("Skipping %s: outside the source directory", ref.src)
            continue
        if not source.is_file():
            logger.debug("Skipping %s: no such file", ref.src)
            continue

        previous = sizes.get(ref.src)
        if previous and previous != (ref.width, ref.height):
            logger.warning(
                "%s is requested at %dx%d and %dx%d; the last size wins",
                ref.src,
                previous[0],
                previous[1],
                ref.width,
                ref.height,
            )
        sizes[ref.src] = (ref.width, ref.height)

        dest = output_dir / ref.src
        logger.info("Resizing and compressing %s to %dx%d", ref.src, ref.width, ref.height)
        resize_image(source, dest, ref.width, ref.height, options)
        if dest not in written:
            written.append(dest)
    return written


def _write_index(output_dir: Path, name: str, html: str) -> None:
    """Write the finished root document to the output directory."""
    target = output_dir / name
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        f.write(html)
