#!/usr/bin/env python3
"""
Token Watchlist
Entry point for ``python -m token_watchlist.main``
"""
from .cli import main

if __name__ == "__main__":
    main()
