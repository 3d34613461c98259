"""Configuration and preprocessor support for books written as Markdown chapters."""

__version__ = "0.1.0"

__all__ = [
    "book_settings",
    "html_settings",
    "config",
    "preprocessor",
]