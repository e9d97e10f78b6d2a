"""DocuMind: retrieval-augmented question answering over indexed documents."""

__version__ = "0.2.0"
