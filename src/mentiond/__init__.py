"""mentiond: a W3C Webmention receiving service.

Exported Functions:
    main: Entry point for the mentiond console command
"""
from .mentiond import main

__all__ = ["main"]
