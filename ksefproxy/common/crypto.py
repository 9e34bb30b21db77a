"""Common cryptographic utilities.
"""

from __future__ import annotations

import base64
import binascii

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from ksefproxy.common.exceptions import CryptoError


class CryptoUtils:
    """Utility class for cryptographic operations."""

    @staticmethod
    def load_public_key(material: str | bytes) -> RSAPublicKey:
        """Load the KSeF RSA public key.

        Accepts a PEM public key, a PEM certificate, or the base64 encoding of
        a DER public key or certificate.
        """
        if isinstance(material, bytes):
            material = material.decode("utf-8", errors="replace")
        material = material.strip()
        if not material:
            msg = "KSeF public key is empty"
            raise CryptoError(msg)

        try:
            if "-----BEGIN" in material:
                data = material.encode()
                if "CERTIFICATE" in material:
                    key = x509.load_pem_x509_certificate(data).public_key()
                else:
                    key = serialization.load_pem_public_key(data)
            else:
                der = base64.b64decode("".join(material.split()), validate=True)
                try:
                    key = serialization.load_der_public_key(der)
                except ValueError:
                    key = x509.load_der_x509_certificate(der).public_key()
        except (ValueError, TypeError, binascii.Error) as err:
            msg = f"Cannot load KSeF public key: {err}"
            raise CryptoError(msg) from err

        if not isinstance(key, RSAPublicKey):
            msg = "KSeF public key is not an RSA key"
            raise CryptoError(msg)
        return key

    @staticmethod
    def build_token_string(timestamp: str, auth_token: str) -> str:
        return f"{timestamp}|{auth_token}"

    @staticmethod
    def encrypt_token(public_key: RSAPublicKey, timestamp: str, auth_token: str) -> str:
        """RSA-encrypt ``timestamp|auth_token`` with PKCS#1 v1.5, base64 encoded."""
        plaintext = CryptoUtils.build_token_string(timestamp, auth_token).encode("utf-8")
        try:
            ciphertext = public_key.encrypt(plaintext, padding.PKCS1v15())
        except ValueError as err:
            msg = f"Token encryption failed: {err}"
            raise CryptoError(msg) from err
        return base64.b64encode(ciphertext).decode("ascii")
