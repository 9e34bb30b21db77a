# KSeF proxy with an in-memory KSeF simulator

from ksefproxy.common.config import Config, resolve_environment_url, resolve_mode
from ksefproxy.server.core import KSeFProxyServer

__all__ = [
    "Config",
    "KSeFProxyServer",
    "resolve_environment_url",
    "resolve_mode",
]
