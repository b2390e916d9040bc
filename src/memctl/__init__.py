"""memctl: Markdown memory vault for session handoffs, phases, and research notes."""

__version__ = "0.3.0"
