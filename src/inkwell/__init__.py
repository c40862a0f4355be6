"""Inkwell — blogging backend.

REST API for local and Google sign-in, and for blog posts with
optional image attachments. Posts can only be changed by their author.
"""

__version__ = "0.1.0"
