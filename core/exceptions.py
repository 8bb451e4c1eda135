"""Exception types raised while serving the share root."""


class FileShareError(Exception):
    """
    Base exception class for all file share errors.
    """
    pass


class NotFoundError(FileShareError):
    """
    Raised when the requested path does not exist under the share root.
    """
    pass


class PathEscapeError(NotFoundError):
    """
    Raised when a request path resolves outside the share root.

    Answered exactly like NotFoundError so the filesystem layout outside
    the root is never revealed.
    """
    pass


class PermissionDeniedError(FileShareError):
    """
    Raised when the OS refuses access to a path under the share root.
    """
    pass


class RangeNotSatisfiableError(FileShareError):
    """
    Raised when a Range header asks for bytes the file does not have.
    """

    def __init__(self, file_size: int):
        super().__init__(f"Requested range not satisfiable for {file_size} bytes")
        self.file_size = file_size


class ThumbnailUnavailableError(FileShareError):
    """
    Raised when no thumbnail could be produced for a file.
    """
    pass
