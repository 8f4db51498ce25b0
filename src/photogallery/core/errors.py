"""Exception types raised by the gallery core.

Filesystem failures are left as the built-in :class:`OSError` family; the
classes here cover the failures that are specific to the gallery and that
the HTTP layer needs to tell apart.
"""


class GalleryError(Exception):
    """Base class for all gallery errors."""

    pass


class SettingsParseError(GalleryError):
    """The gallery settings file is not valid JSON or has the wrong shape."""

    pass


class TemplateRenderError(GalleryError):
    """The page template could not be compiled or rendered."""

    pass


class ImageNotFoundError(GalleryError):
    """The requested image does not exist inside the gallery directory.

    This is an expected condition (a stale link, a typo) and maps to 404.
    """

    pass


class CompressionError(GalleryError):
    """The external compression tool failed to produce a cache file.

    Attributes:
        diagnostics: Whatever the tool wrote to stderr, if anything.
    """

    def __init__(self, message: str, diagnostics: str = ""):
        super().__init__(message)
        self.diagnostics = diagnostics

    def __str__(self) -> str:
        message = super().__str__()
        if self.diagnostics:
            return f"{message}: {self.diagnostics.strip()}"
        return message
