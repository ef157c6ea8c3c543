"""Technical adapters used by the state core."""

from .api import ApiClient, RequestClient, get_error_text

__all__ = ["ApiClient", "RequestClient", "get_error_text"]
