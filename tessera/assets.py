"""Static asset pipeline for Tessera.

This module handles everything a build writes besides the root document:
the assets directory and root stylesheet/script are copied, then the images
directory is compressed into the output.

Key components:
- AssetPipeline: Copies static files and compresses leftover images.
- Individual processors in asset_processors module for each file type.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from .asset_processors import (
    AssetProcessorRegistry,
    ImageProcessor,
    StaticAssetProcessor,
    create_default_registry,
)
from .images import EncodeOptions

logger = logging.getLogger(__name__)


class AssetPipeline:
    """Copies static assets and compresses images into the output directory.

    Attributes:
        src_dir: Site source directory.
        output_dir: Directory where processed assets are written.
        assets_dir_name: Name of the directory copied verbatim.
        images_dir_name: Name of the directory whose images are compressed.
        root_files: File names at the top of src_dir copied to the output.
        processor_registry: Registry of asset processors.
    """

    def __init__(
        self,
        src_dir: Path,
        output_dir: Path,
        assets_dir_name: str = "assets",
        images_dir_name: str = "images",
        root_files: Iterable[str] = ("styles.css", "script.js"),
        processor_registry: AssetProcessorRegistry | None = None,
        encode_options: EncodeOptions | None = None,
        minify_static: bool = False,
    ):
        self.src_dir = src_dir
        self.output_dir = output_dir
        self.assets_dir_name = assets_dir_name
        self.images_dir_name = images_dir_name
        self.root_files = list(root_files)
        self.processor_registry = processor_registry or create_default_registry(
            encode_options, minify_static
        )

    def run(self, written: Iterable[Path] = ()) -> tuple[list[Path], list[Path]]:
        """Copy static assets, then compress remaining images.

        Args:
            written: Output paths produced earlier in the build (the resized
                images). They are neither overwritten nor reported again.

        Returns:
            Tuple of (copied output paths, compressed image output paths).
        """
        copied = self.copy_static(written)
        compressed = self.compress_images()
        return copied, compressed

    def copy_static(self, written: Iterable[Path] = ()) -> list[Path]:
        """Copy the assets directory and the root files.

        Args:
            written: Output paths already produced by the build; copying
                skips them.

        Returns:
            Output paths that were written.
        """
        handled = {p.resolve() for p in written}
        copied = self._copy_assets_dir(handled)
        copied.extend(self._copy_root_files(handled))
        return copied

    def compress_images(self) -> list[Path]:
        """Compress images that do not have an output yet.

        Images already present in the output (the resized copies written
        earlier in the build) are left alone.

        Returns:
            Output paths of the images written by this step.
        """
        images_dir = self.src_dir / self.images_dir_name
        if not images_dir.is_dir():
            return []

        target = self.output_dir / self.images_dir_name
        written: list[Path] = []
        for item in sorted(images_dir.rglob("*")):
            if item.is_dir():
                continue
            dest = target / item.relative_to(images_dir)
            if dest.exists():
                continue
            logger.info("Compressing %s", item.relative_to(images_dir))
            self.processor_registry.process(item, dest)
            written.append(dest)
        return written

    def _copy_assets_dir(self, handled: set[Path]) -> list[Path]:
        assets_src = self.src_dir / self.assets_dir_name
        if not assets_src.is_dir():
            return []
        assets_dest = self.output_dir / self.assets_dir_name
        copied: list[Path] = []

        def copy(src: str, dst: str) -> str:
            if Path(dst).resolve() in handled:
                logger.debug("Keeping resized %s", dst)
                return dst
            copied.append(Path(dst))
            return shutil.copy2(src, dst)

        shutil.copytree(assets_src, assets_dest, copy_function=copy, dirs_exist_ok=True)
        logger.info("Copied assets from %s to %s", assets_src, assets_dest)
        return sorted(copied)

    def _copy_root_files(self, handled: set[Path]) -> list[Path]:
        copied: list[Path] = []
        static = StaticAssetProcessor()
        for name in self.root_files:
            source = self.src_dir / name
            if not source.is_file():
                continue
            dest = self.output_dir / name
            if dest.resolve() in handled:
                continue
            processor = self.processor_registry.get_processor(source) or static
            # Root files are copied, never re-encoded
            if isinstance(processor, ImageProcessor):
                processor = static
            processor.process(source, dest)
            logger.info("Copied %s to %s", name, self.output_dir)
            copied.append(dest)
        return copied
