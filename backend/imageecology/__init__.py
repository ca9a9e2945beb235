"""Image Ecology backend: asset enrichment and multi-parent image remixing."""

__version__ = "0.1.0"
