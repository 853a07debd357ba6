"""
Campus Bridge.

Moves approved study materials from intake storage to a pool of Dropbox
accounts and publishes direct-download links.
"""

__version__ = "1.0.0"
