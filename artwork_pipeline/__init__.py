"""Derivative image maintenance for the artwork gallery.

Reacts to raw-image bucket events (resize, upload, index) and builds
exhibition ribbon previews.
"""

__version__ = "0.1.0"
