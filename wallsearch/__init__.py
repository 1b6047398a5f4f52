"""wallsearch - client-side search session for a wallpaper search API."""

__version__ = "0.1.0"
