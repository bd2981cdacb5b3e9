"""
Shared test fixtures and helpers for the ocsp-codec test suite.

Builds a small PKI in memory with cryptography's CertificateBuilder:

  test CA (RSA)
    ├── RSA responder      (OCSP signing)
    ├── EC P-256 responder (OCSP signing)
    └── leaf certificate   (the certificate being checked)

  unrelated CA (RSA) — for chain failures

Keys are generated once per session; RSA generation dominates test time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPrivateKeyTypes
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from ocsp_codec.config import OcspSettings

LEAF_SERIAL = 0x1234


@dataclass(frozen=True)
class KeyPair:
    """A certificate together with its private key."""

    key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey
    cert: x509.Certificate


def _name(common_name: str) -> x509.Name:
    return x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, "ES"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "OCSP Codec Tests"),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ]
    )


def make_certificate(
    common_name: str,
    key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey,
    issuer: KeyPair | None = None,
    serial_number: int | None = None,
    ca: bool = False,
    ocsp_signing: bool = False,
    basic_constraints: bool = True,
) -> x509.Certificate:
    """
    Issue a certificate for `key`; self-signed when `issuer` is None.

    CA certificates get BasicConstraints(ca=True) and keyCertSign. With
    `basic_constraints=False` a non-CA certificate carries no extensions.
    """
    now = datetime.now(UTC)
    subject = _name(common_name)
    issuer_name = issuer.cert.subject if issuer is not None else subject
    signing_key: CertificateIssuerPrivateKeyTypes = issuer.key if issuer is not None else key

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(serial_number if serial_number is not None else x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
    )
    if basic_constraints or ca:
        builder = builder.add_extension(
            x509.BasicConstraints(ca=ca, path_length=None), critical=True
        )
    if ca:
        builder = builder.add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
    if ocsp_signing:
        builder = builder.add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.OCSP_SIGNING]),
            critical=False,
        )
    return builder.sign(signing_key, hashes.SHA256())


# ─────────────────────── PKI Fixtures ───────────────────────


@pytest.fixture(scope="session")
def ca() -> KeyPair:
    """Self-signed RSA test CA."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return KeyPair(key=key, cert=make_certificate("Test CA", key, ca=True))


@pytest.fixture(scope="session")
def other_ca() -> KeyPair:
    """A second, unrelated RSA CA."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return KeyPair(key=key, cert=make_certificate("Unrelated CA", key, ca=True))


@pytest.fixture(scope="session")
def rsa_responder(ca: KeyPair) -> KeyPair:
    """RSA OCSP responder certified by the test CA."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    cert = make_certificate("RSA Responder", key, issuer=ca, ocsp_signing=True)
    return KeyPair(key=key, cert=cert)


@pytest.fixture(scope="session")
def ec_responder(ca: KeyPair) -> KeyPair:
    """ECDSA P-256 OCSP responder certified by the test CA."""
    key = ec.generate_private_key(ec.SECP256R1())
    cert = make_certificate("EC Responder", key, issuer=ca, ocsp_signing=True)
    return KeyPair(key=key, cert=cert)


@pytest.fixture(scope="session")
def leaf(ca: KeyPair) -> KeyPair:
    """End-entity certificate with serial LEAF_SERIAL, issued by the test CA."""
    key = ec.generate_private_key(ec.SECP256R1())
    cert = make_certificate("leaf.example.test", key, issuer=ca, serial_number=LEAF_SERIAL)
    return KeyPair(key=key, cert=cert)


@pytest.fixture(scope="session")
def bare_issuer() -> KeyPair:
    """Self-signed v3 EC certificate without any extensions."""
    key = ec.generate_private_key(ec.SECP256R1())
    cert = make_certificate("Bare Issuer", key, basic_constraints=False)
    return KeyPair(key=key, cert=cert)


@pytest.fixture(scope="session")
def bare_responder(bare_issuer: KeyPair) -> KeyPair:
    """EC OCSP responder certified by the extension-less issuer."""
    key = ec.generate_private_key(ec.SECP256R1())
    cert = make_certificate("Bare Responder", key, issuer=bare_issuer, ocsp_signing=True)
    return KeyPair(key=key, cert=cert)


# ─────────────────────── Settings ───────────────────────


@pytest.fixture()
def settings() -> OcspSettings:
    """Default settings, independent of the environment and any .env file."""
    return OcspSettings(_env_file=None)
