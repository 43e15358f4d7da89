"""Column-family table store layer.

This package defines the store protocol the matrix layer talks to,
the matrix table schema, cell encoding, and local store backends.
"""
