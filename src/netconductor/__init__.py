"""netconductor - multi-layer network topology merging, diffing and what-if generation."""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
