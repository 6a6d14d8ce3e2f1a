"""Grade Watch: portal login, grade report scraping and new-grade alerts."""

__version__ = "0.1.0"
