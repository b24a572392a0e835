"""Per-image pipeline and sequential batch driver."""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Sequence, Union

from .buffer import PixelBuffer
from .matting import MattingEngine
from .options import ProcessingOptions
from .processing import (
    aggressive_edge_cleanup,
    erode_edges,
    remove_light_edges,
    remove_liquid_glass_outline,
    smooth_edges,
)
from .quality import apply_quality_method


logger = logging.getLogger(__name__)


class ImageStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


@dataclass
class BatchItem:
    """
    One image of a batch.

    ``source`` is encoded bytes, a file path, a binary file object or an
    already decoded PixelBuffer. After processing, ``output`` holds the PNG
    bytes and ``result`` the final buffer, or ``error`` holds the failure
    message.
    """

    name: str
    source: Union[bytes, str, Path, BinaryIO, PixelBuffer]
    status: ImageStatus = ImageStatus.PENDING
    output: Optional[bytes] = None
    result: Optional[PixelBuffer] = None
    error: Optional[str] = None


class IconPipeline:
    """
    Matte and refine icons with one set of options.

    The options and reference are read-only, so one pipeline serves a
    whole batch.

    Example:
        pipeline = IconPipeline(ProcessingOptions(erode_pixels=1), reference=backdrop)
        cutout = pipeline.process(icon)
        pipeline.process_batch(items)
    """

    def __init__(
        self,
        options: Optional[ProcessingOptions] = None,
        reference: Optional[PixelBuffer] = None
    ):
        """
        Initialize the pipeline.

        Args:
            options: Processing options. Defaults to ProcessingOptions().
            reference: Optional reference backdrop for reference matting.
        """
        self.options = options or ProcessingOptions()
        self.reference = reference
        self.engine = MattingEngine(
            reference=reference,
            color=self.options.target_background_color,
            threshold=self.options.threshold,
        )

    def refinement_steps(self) -> List[Callable[[PixelBuffer], PixelBuffer]]:
        """Active refinement steps, in application order."""
        opts = self.options
        steps = []
        if opts.edge_smoothing:
            steps.append(smooth_edges)
        if opts.remove_light_edges:
            steps.append(remove_light_edges)
        if opts.erode_pixels > 0:
            steps.append(lambda buf: erode_edges(buf, opts.erode_pixels))
        if opts.edge_cleanup:
            steps.append(aggressive_edge_cleanup)
        if opts.remove_liquid_glass:
            steps.append(lambda buf: remove_liquid_glass_outline(
                buf, opts.glass_outline_width, opts.glass_brightness
            ))
        return steps

    def process(self, image: PixelBuffer) -> PixelBuffer:
        """
        Run matting, refinement and the optional quality method.

        Args:
            image: Source buffer; left unmodified.

        Returns:
            Cut-out buffer with refined alpha.
        """
        result = self.engine.matte(image)
        for step in self.refinement_steps():
            result = step(result)

        if self.options.quality_method:
            result = apply_quality_method(
                result, self.options.quality_method, **self.options.quality_params
            )
        return result

    def process_item(self, item: BatchItem) -> BatchItem:
        """
        Process one batch item in place.

        Any failure is recorded on the item as ERROR with its message;
        nothing is raised.

        Returns:
            The same item.
        """
        from ..utils.image_utils import decode_image, encode_png

        item.status = ImageStatus.PROCESSING
        item.error = None
        start_time = time.perf_counter()

        try:
            if isinstance(item.source, PixelBuffer):
                image = item.source
            else:
                image = decode_image(item.source)
            result = self.process(image)
            item.output = encode_png(result)
            item.result = result
            item.status = ImageStatus.DONE
            logger.info(
                "Processed %s (%dx%d) in %.0f ms",
                item.name, result.width, result.height,
                (time.perf_counter() - start_time) * 1000,
            )
        except Exception as e:
            item.status = ImageStatus.ERROR
            item.error = str(e) or type(e).__name__
            item.output = None
            item.result = None
            logger.error("Failed to process %s: %s", item.name, item.error)
            logger.debug("Traceback for %s", item.name, exc_info=True)

        return item

    def process_batch(
        self,
        items: Sequence[BatchItem],
        progress_callback: Optional[Callable[[int, int, str], None]] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
        yield_seconds: float = 0.05
    ) -> List[BatchItem]:
        """
        Process a batch sequentially.

        Items already DONE are skipped, so calling this again retries only
        pending and failed items. One item's failure never stops the batch.

        Args:
            items: Batch items, processed in the given order.
            progress_callback: Called with (completed, total, name) after
                               each processed item.
            should_cancel: Polled before each item; returning True stops
                           the batch, leaving the remaining items untouched.
            yield_seconds: Pause between items.

        Returns:
            The items.
        """
        todo = [item for item in items if item.status != ImageStatus.DONE]
        total = len(todo)

        for i, item in enumerate(todo):
            if should_cancel is not None and should_cancel():
                logger.info("Batch cancelled after %d of %d images", i, total)
                break

            if i > 0 and yield_seconds > 0:
                time.sleep(yield_seconds)

            self.process_item(item)

            if progress_callback:
                progress_callback(i + 1, total, item.name)

        return list(items)
