"""Matrix resource layer.

This package owns matrix handles, their lifecycle state machine,
reference counting, alias bindings and the client entry point.
"""
