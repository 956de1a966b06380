from .simple_proxy import SimpleProxyFetcher
from .standard import DEFAULT_USER_AGENT, FormBody, HttpxFetcher

__all__ = [
    "DEFAULT_USER_AGENT",
    "FormBody",
    "HttpxFetcher",
    "SimpleProxyFetcher",
]
