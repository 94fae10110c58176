"""
Custom Trust Store
==================
Loads a password-protected PKCS#12 trust store and exposes its
certificates as a PEM CA file for the MongoDB driver.

Only trust material is used: private keys in the bundle are ignored and
no client certificate is presented.
"""

import os
import tempfile
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import List

from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding, pkcs12

from ..utils.logger import get_logger

logger = get_logger(__name__)


class TrustStoreError(ValueError):
    """Trust store missing, unreadable or without certificates."""


@dataclass(frozen=True)
class TrustStore:
    """PEM trust anchors written to ``ca_file``."""

    ca_file: str
    certificate_count: int

    def driver_options(self) -> dict:
        """Keyword arguments for ``MongoClient``."""
        return {"tls": True, "tlsCAFile": self.ca_file}

    def cleanup(self) -> None:
        """Remove the PEM file."""
        try:
            os.unlink(self.ca_file)
        except FileNotFoundError:
            pass


def _read_location(location: str, resource_package: str) -> bytes:
    path = Path(location)
    if path.is_file():
        return path.read_bytes()

    try:
        resource = resources.files(resource_package).joinpath(location)
    except ModuleNotFoundError as e:
        raise TrustStoreError(f"Resource package not found: {resource_package}") from e

    if not resource.is_file():
        raise TrustStoreError(f"Trust store not found: {location}")

    return resource.read_bytes()


def _trusted_certificates(data: bytes, password: str) -> List[x509.Certificate]:
    try:
        bundle = pkcs12.load_pkcs12(data, password.encode("utf-8"))
    except ValueError as e:
        raise TrustStoreError(f"Unable to decrypt trust store: {e}") from e

    certificates = []
    if bundle.cert is not None:
        certificates.append(bundle.cert.certificate)
    certificates.extend(entry.certificate for entry in bundle.additional_certs)

    return certificates


def load_trust_store(
    location: str,
    password: str,
    resource_package: str = "lsd_distributed_mongo"
) -> TrustStore:
    """
    Load a PKCS#12 trust store.

    Args:
        location: Filesystem path, or resource path inside ``resource_package``
        password: Store password
        resource_package: Package that ships the trust store

    Returns:
        TrustStore: Certificates exported to a temporary PEM file

    Raises:
        TrustStoreError: Store not found, wrong password or no certificates
    """
    certificates = _trusted_certificates(_read_location(location, resource_package), password)

    if not certificates:
        raise TrustStoreError(f"Trust store contains no certificates: {location}")

    pem = b"".join(cert.public_bytes(Encoding.PEM) for cert in certificates)

    with tempfile.NamedTemporaryFile(
        mode="wb", prefix="lsd-truststore-", suffix=".pem", delete=False
    ) as ca_file:
        ca_file.write(pem)

    logger.info(f"🔐 Loaded {len(certificates)} trusted certificate(s) from {location}")

    return TrustStore(ca_file=ca_file.name, certificate_count=len(certificates))
