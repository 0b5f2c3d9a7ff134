"""
Render runner: a harness that repeatedly builds and runs a renderer example.

Modules separate argument/config resolution, output path planning, external
process execution, and timing. See `render_session.py` for the primary CLI.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
