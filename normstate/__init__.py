"""normstate — normalized, id-indexed record collections driven by a pure reducer."""

__version__ = "0.1.0"
