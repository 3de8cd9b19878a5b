"""Vector storage components."""

from .ids import VectorId, decode, encode, ids_for_document
from .index import VectorIndex

__all__ = [
    "VectorId",
    "VectorIndex",
    "decode",
    "encode",
    "ids_for_document",
]
