"""Mission state transitions.

This package decides how a responder status changes a mission. It performs
no I/O; the pipeline applies its decisions and publishes the events.
"""
