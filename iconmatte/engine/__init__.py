"""Matting and edge refinement engine for icon images."""

from .buffer import PixelBuffer
from .matting import MattingEngine, matte
from .options import ProcessingOptions
from .pipeline import BatchItem, IconPipeline, ImageStatus
from .quality import QUALITY_METHODS, apply_quality_method

__all__ = [
    "PixelBuffer",
    "MattingEngine",
    "matte",
    "ProcessingOptions",
    "BatchItem",
    "IconPipeline",
    "ImageStatus",
    "QUALITY_METHODS",
    "apply_quality_method",
]
