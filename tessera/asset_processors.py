"""Asset processors for Tessera.

Each processor handles a single kind of file and a registry picks the first
processor that accepts a path, highest priority first.

Key classes:
- ImageProcessor: Re-encodes raster images.
- StylesheetProcessor: Copies CSS files, optionally minified with rcssmin.
- ScriptProcessor: Copies JavaScript files, optionally minified with rjsmin.
- StaticAssetProcessor: Copies any file unchanged.
- AssetProcessorRegistry: Registry for managing asset processors.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path

import rcssmin
import rjsmin

from .images import EncodeOptions, compress_image


class BaseAssetProcessor(ABC):
    """Base class for asset processors."""

    @property
    @abstractmethod
    def priority(self) -> int:
        """Return processor priority (higher = checked first)."""
        ...

    @abstractmethod
    def can_process(self, path: Path) -> bool:
        """Check if this processor can handle the given asset."""
        ...

    @abstractmethod
    def process(self, source: Path, dest: Path) -> bool:
        """Process an asset file.

        Args:
            source: Source asset path.
            dest: Destination path for processed asset.

        Returns:
            True if the asset was transformed, False if it was copied as is.
        """
        ...

    def ensure_dest_dir(self, dest: Path) -> None:
        """Ensure the parent directory of the destination exists."""
        dest.parent.mkdir(parents=True, exist_ok=True)


class ImageProcessor(BaseAssetProcessor):
    """Compresses raster images at their original size.

    Files Pillow cannot handle are copied unchanged by compress_image.
    """

    SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp", ".tif", ".tiff"}

    def __init__(self, options: EncodeOptions | None = None):
        self.options = options or EncodeOptions()

    @property
    def priority(self) -> int:
        return 100

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in self.SUPPORTED_EXTENSIONS

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        return compress_image(source, dest, self.options)


class StylesheetProcessor(BaseAssetProcessor):
    """Copies CSS files, minifying them with rcssmin when enabled."""

    def __init__(self, minify: bool = False):
        self.minify = minify

    @property
    def priority(self) -> int:
        return 90

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".css"

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        if not self.minify:
            shutil.copy2(source, dest)
            return False
        with open(source, encoding="utf-8") as f_in:
            minified = rcssmin.cssmin(f_in.read())
        with open(dest, "w", encoding="utf-8") as f_out:
            f_out.write(minified)
        return True


class ScriptProcessor(BaseAssetProcessor):
    """Copies JavaScript files, minifying them with rjsmin when enabled."""

    def __init__(self, minify: bool = False):
        self.minify = minify

    @property
    def priority(self) -> int:
        return 80

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in {".js", ".mjs"}

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        if not self.minify:
            shutil.copy2(source, dest)
            return False
        with open(source, encoding="utf-8") as f_in:
            minified = rjsmin.jsmin(f_in.read())
        with open(dest, "w", encoding="utf-8") as f_out:
            f_out.write(minified)
        return True


class StaticAssetProcessor(BaseAssetProcessor):
    """Copies files without modification.

    This is the fallback processor for anything no other processor claims
    (fonts, SVGs, text files).
    """

    @property
    def priority(self) -> int:
        return 0  # Lowest priority - fallback

    def can_process(self, path: Path) -> bool:
        return True

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        shutil.copy2(source, dest)
        return False


class AssetProcessorRegistry:
    """Registry for managing asset processors.

    New processors can be registered without changing the pipeline; the
    registry selects the highest-priority processor that accepts a path.
    """

    def __init__(self):
        self._processors: list[BaseAssetProcessor] = []

    def register(self, processor: BaseAssetProcessor) -> None:
        """Register a new processor.

        Processors are stored sorted by priority (highest first).
        """
        self._processors.append(processor)
        self._processors.sort(key=lambda p: p.priority, reverse=True)

    def get_processor(self, path: Path) -> BaseAssetProcessor | None:
        """Get the appropriate processor for a file, or None."""
        for processor in self._processors:
            if processor.can_process(path):
                return processor
        return None

    def process(self, source: Path, dest: Path) -> bool:
        """Process an asset using the appropriate processor.

        Returns:
            The processor's result, or False if no processor accepted the file.
        """
        processor = self.get_processor(source)
        if processor:
            return processor.process(source, dest)
        return False


def create_default_registry(
    options: EncodeOptions | None = None, minify_static: bool = False
) -> AssetProcessorRegistry:
    """Create a registry with the default processors.

    Args:
        options: Encoder settings for images.
        minify_static: Minify stylesheets and scripts instead of copying them.

    Returns:
        Configured AssetProcessorRegistry.
    """
    registry = AssetProcessorRegistry()
    registry.register(ImageProcessor(options))
    registry.register(StylesheetProcessor(minify_static))
    registry.register(ScriptProcessor(minify_static))
    registry.register(StaticAssetProcessor())
    return registry
