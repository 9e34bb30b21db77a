# Common utilities
from ksefproxy.common.crypto import CryptoUtils as CryptoUtils
from ksefproxy.common.logging_utils import setup_logger as setup_logger
from ksefproxy.common.mixins import Configurable as Configurable

__all__ = ["Configurable", "CryptoUtils", "setup_logger"]
