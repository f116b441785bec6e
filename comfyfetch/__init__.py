"""
comfyfetch - ComfyUI workflow dependency fetcher.

Scans a workflow for the custom nodes and model files it needs, identifies
where to get them and writes an installer script for bash or Windows batch.
"""

__version__ = "0.1.0"

from . import core
from . import workflows

__all__ = ["core", "workflows", "__version__"]
