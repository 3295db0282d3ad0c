"""Custom exceptions for netconductor."""


class NetConductorError(Exception):
    """Base exception for all netconductor errors."""

    kind = "error"
    http_status = 500

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message

    def to_dict(self) -> dict:
        return {
            "error": self.http_status,
            "kind": self.kind,
            "message": str(self),
        }


class NotFoundError(NetConductorError):
    """Requested network, snapshot, layer, node or term-point is absent."""

    kind = "not_found"
    http_status = 404


class ResolutionError(NetConductorError):
    """A support reference or link endpoint does not resolve."""

    kind = "resolution"
    http_status = 500


class ValidationError(NetConductorError):
    """Input validation error."""

    kind = "validation"
    http_status = 400

    def __init__(self, message: str, details: str | None = None, http_status: int | None = None):
        super().__init__(message, details)
        if http_status is not None:
            self.http_status = http_status


class UnsupportedUseCaseError(NetConductorError):
    """Candidate generation requested for an unknown use case."""

    kind = "unsupported_usecase"
    http_status = 400

    def __init__(self, usecase: str, supported: tuple[str, ...] = ()):
        details = f"supported: {', '.join(supported)}" if supported else None
        super().__init__(f"Unsupported usecase: {usecase}", details)
        self.usecase = usecase


class IndexOutOfRangeError(NetConductorError):
    """Candidate index exceeds the prefix-set size."""

    kind = "index_out_of_range"
    http_status = 400

    def __init__(self, index: int, size: int):
        super().__init__(f"Candidate index {index} is out of range", f"prefix-set size is {size}")
        self.index = index
        self.size = size


class StoreError(NetConductorError):
    """Topology store (backend) request failed."""

    kind = "store"
    http_status = 502
