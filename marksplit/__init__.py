"""marksplit - split long Markdown into transport-sized messages."""

__version__ = "0.1.0"
