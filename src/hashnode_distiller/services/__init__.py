"""Services used by the converter: document writing and run logging."""

from .conversion_logger import SUCCESS, ConversionLogger
from .file_writer import FileWriter

__all__ = ["ConversionLogger", "FileWriter", "SUCCESS"]
