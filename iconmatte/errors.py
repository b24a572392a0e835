"""Exception types raised by the icon matting pipeline."""


class IconMatteError(Exception):
    """Base class for all iconmatte errors."""


class DecodeFailure(IconMatteError):
    """An input artifact could not be decoded into a pixel buffer."""


class EncodeFailure(IconMatteError):
    """A pixel buffer could not be serialized back into an image artifact."""
