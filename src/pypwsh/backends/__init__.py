from .base import ByteReader, ByteWriter, ProcessBackend
from .local import LocalBackend

__all__ = ["ByteReader", "ByteWriter", "LocalBackend", "ProcessBackend"]
