"""Public API surface for HTTP serving and Python-first interfaces."""

from book_gen.api.app import create_app
from book_gen.core.exchange_codec import load_exchange_json, save_exchange_json
from book_gen.api.python_interface import BookApiClient

__all__ = [
    "BookApiClient",
    "create_app",
    "load_exchange_json",
    "save_exchange_json",
]
