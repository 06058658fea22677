"""Tessera static-site asset builder.

This package assembles a hand-written static site into a deployable output
directory. A build inlines HTML component fragments into the root document,
minifies the markup, resizes images that carry explicit width and height
attributes, copies the remaining static assets and compresses the images that
were not resized.

The main entry point is the CLI module, which exposes the ``build`` command.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
