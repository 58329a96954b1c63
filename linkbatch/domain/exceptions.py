from pathlib import Path


class LinkBatchException(Exception):
    """Base exception for all link batch errors."""
    pass

class LoadError(LinkBatchException):
    """Raised when a descriptor cannot be read, validated or translated."""
    def __init__(self, descriptor: Path, reason: str):
        self.descriptor = descriptor
        self.reason = reason
        super().__init__(f"Could not load {descriptor}: {reason}")

class GenerationError(LinkBatchException):
    """Raised when a linkset fails to produce output."""
    pass

class ArchiveError(LinkBatchException):
    """Raised when a generated file cannot be copied into the archive."""
    def __init__(self, source: Path, destination: Path, reason: str):
        self.source = source
        self.destination = destination
        super().__init__(f"Could not archive {source} to {destination}: {reason}")

class ScanError(LinkBatchException):
    """Raised when an archived file cannot be read."""
    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Could not read {path}: {reason}")

class ConfigurationError(LinkBatchException):
    """Raised for invalid settings, before any phase runs."""
    pass
