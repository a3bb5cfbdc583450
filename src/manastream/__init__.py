from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = [
    "__version__",
    "RenderLimits",
    "RendererState",
    "StreamRenderer",
    "classify_line",
]

__version__ = "0.1.0"

if TYPE_CHECKING:
    from .config import RenderLimits
    from .events import classify_line
    from .format_stream import StreamRenderer
    from .state import RendererState


def __getattr__(name: str):
    if name == "RenderLimits":
        from .config import RenderLimits

        return RenderLimits
    if name == "RendererState":
        from .state import RendererState

        return RendererState
    if name == "classify_line":
        from .events import classify_line

        return classify_line
    if name == "StreamRenderer":
        from .format_stream import StreamRenderer

        return StreamRenderer
    raise AttributeError(f"module 'manastream' has no attribute {name!r}")
