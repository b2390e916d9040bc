"""Infrastructure layer: note backends, the vault, and tracker state.

INVARIANT: The vault directory tree is the only source of truth.
"""
