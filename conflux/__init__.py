"""conflux: one-way sync of a local Markdown tree into a Confluence space."""

__version__ = "0.1.0"
