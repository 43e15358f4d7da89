"""Matrix path allocation.

This package generates collision-free table paths for new matrices.
"""
