"""Domain layer: pure types, codecs, and naming rules.

Nothing in this package touches the filesystem.
"""
