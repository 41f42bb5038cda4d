"""
Storage layer for Claude Usage.

Data model types and the repository query surface.
"""
