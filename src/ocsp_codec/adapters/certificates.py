"""
Certificate helpers — the raw X.509 pieces an OCSP CertID is built from.

cryptography gives us typed certificates, but CertID hashes are defined
over exact encodings: the issuer's subject Name DER and the BIT STRING
contents of its subjectPublicKey. Those are read back with asn1crypto
from the certificate's own DER so nothing gets re-encoded on the way.
"""

from __future__ import annotations

from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding

from ocsp_codec.adapters import algorithms, asn1_schema
from ocsp_codec.domain.models import AlgorithmIdentifier, HashKind


def _tbs_certificate(cert: x509.Certificate) -> asn1_x509.TbsCertificate:
    return asn1_x509.Certificate.load(cert.public_bytes(Encoding.DER))["tbs_certificate"]


def raw_subject(cert: x509.Certificate) -> bytes:
    """DER of the certificate's subject Name, exactly as encoded in the certificate."""
    return _tbs_certificate(cert)["subject"].dump()


def public_key_bits(cert: x509.Certificate) -> bytes:
    """Contents of the subjectPublicKey BIT STRING (no unused-bits octet)."""
    spki_der = _tbs_certificate(cert)["subject_public_key_info"].dump()
    return asn1_schema.SubjectPublicKeyInfo.load(spki_der)["public_key"].native


def issuer_hashes(issuer: x509.Certificate, hash_kind: HashKind) -> tuple[bytes, bytes]:
    """Return (issuerNameHash, issuerKeyHash) for `issuer` under `hash_kind`."""
    name_hash = algorithms.digest(hash_kind, raw_subject(issuer))
    key_hash = algorithms.digest(hash_kind, public_key_bits(issuer))
    return name_hash, key_hash


def signature_identifier(cert: x509.Certificate) -> AlgorithmIdentifier:
    """The outer signatureAlgorithm of a certificate, parameters kept raw."""
    outer = asn1_x509.Certificate.load(cert.public_bytes(Encoding.DER))["signature_algorithm"]
    identifier = asn1_schema.AlgorithmIdentifier.load(outer.dump())
    return algorithms.identifier_from_asn1(identifier)


def verify_issued_by(cert: x509.Certificate, issuer: x509.Certificate) -> None:
    """
    Check that `issuer`'s key signed `cert`.

    Only the signature is checked; the issuer's own extensions are not
    consulted. Raises VerificationError when the signature does not verify.
    """
    algorithm = algorithms.signature_algorithm_from_identifier(signature_identifier(cert))
    algorithms.check_signature(
        algorithm,
        cert.tbs_certificate_bytes,
        cert.signature,
        issuer.public_key(),
    )
