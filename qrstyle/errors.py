"""Exception types raised by the qrstyle pipeline."""


class QRStyleError(Exception):
    """Base class for qrstyle failures."""


class EncodingError(QRStyleError):
    """The text does not fit a QR symbol at the requested level and version ceiling.

    Fatal: nothing downstream can run without a module grid.
    """

    def __init__(self, message: str, *, length: int = 0, level: str = "", max_version: int = 40):
        super().__init__(message)
        self.length = length
        self.level = level
        self.max_version = max_version


class AssetLoadError(QRStyleError):
    """A center-image asset could not be found or read."""


class AssetDecodeError(AssetLoadError):
    """A center-image asset was read but is not a decodable image."""


class StylingRenderError(QRStyleError):
    """A styling stage failed; the pipeline continued with the last good image."""

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"stage '{stage}' failed: {cause}")
        self.stage = stage
        self.cause = cause
