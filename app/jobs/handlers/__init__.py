"""
Per-type job handlers.
"""
