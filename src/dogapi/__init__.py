"""dogapi — per-user dog image storage behind username/password auth.

Users register and log in for a bearer token; with it they upload,
list, fetch, replace, and delete their own images. Nobody else's.
"""

__version__ = "0.1.0"
