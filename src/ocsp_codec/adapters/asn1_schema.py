"""
OCSP ASN.1 schema — the RFC 6960 grammar bound to asn1crypto.

asn1crypto does the actual DER work: Sequence fields are encoded in
declaration order, fields equal to their DEFAULT are left out when
encoding and filled in when decoding, integers are minimal two's
complement and GeneralizedTime is written with a four-digit year in UTC.

Two fields are deliberately left untyped (core.Any):

  - ResponseData.responderID, so the parser can dispatch on the raw
    class/tag of the value instead of failing inside a CHOICE
  - BasicOCSPResponse.certs entries, so only the first certificate a
    responder sends has to be well-formed

ResponderId is still declared as a CHOICE because that is how the
builder encodes it.
"""

from __future__ import annotations

from asn1crypto import core
from asn1crypto import x509 as asn1_x509

from ocsp_codec.domain import models
from ocsp_codec.domain.errors import ParseError

ID_PKIX_OCSP_BASIC = "1.3.6.1.5.5.7.48.1.1"

NULL_PARAMETERS = b"\x05\x00"

# Canonical error responses: SEQUENCE { responseStatus ENUMERATED }
MALFORMED_REQUEST_ERROR_RESPONSE = bytes.fromhex("3003 0a01 01")
INTERNAL_ERROR_ERROR_RESPONSE = bytes.fromhex("3003 0a01 02")
TRY_LATER_ERROR_RESPONSE = bytes.fromhex("3003 0a01 03")
SIG_REQUIRED_ERROR_RESPONSE = bytes.fromhex("3003 0a01 05")
UNAUTHORIZED_ERROR_RESPONSE = bytes.fromhex("3003 0a01 06")


# ─────────────────────── Shared PKIX pieces ───────────────────────


class AlgorithmIdentifier(core.Sequence):  # type: ignore[misc]
    """AlgorithmIdentifier with parameters kept as an opaque value."""

    _fields = [
        ("algorithm", core.ObjectIdentifier),
        ("parameters", core.Any, {"optional": True}),
    ]


class Extension(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("extn_id", core.ObjectIdentifier),
        ("critical", core.Boolean, {"default": False}),
        ("extn_value", core.OctetString),
    ]


class Extensions(core.SequenceOf):  # type: ignore[misc]
    _child_spec = Extension


class SubjectPublicKeyInfo(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("algorithm", AlgorithmIdentifier),
        ("public_key", core.OctetBitString),
    ]


class Version(core.Integer):  # type: ignore[misc]
    _map = {0: "v1"}


class CertId(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("hash_algorithm", AlgorithmIdentifier),
        ("issuer_name_hash", core.OctetString),
        ("issuer_key_hash", core.OctetString),
        ("serial_number", core.Integer),
    ]


class Certificates(core.SequenceOf):  # type: ignore[misc]
    _child_spec = core.Any


# ─────────────────────── OCSPRequest (RFC 6960 4.1.1) ───────────────────────


class Request(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("req_cert", CertId),
        ("single_request_extensions", Extensions, {"explicit": 0, "optional": True}),
    ]


class Requests(core.SequenceOf):  # type: ignore[misc]
    _child_spec = Request


class TBSRequest(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("version", Version, {"explicit": 0, "default": "v1"}),
        ("requestor_name", asn1_x509.GeneralName, {"explicit": 1, "optional": True}),
        ("request_list", Requests),
        ("request_extensions", Extensions, {"explicit": 2, "optional": True}),
    ]


class Signature(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("signature_algorithm", AlgorithmIdentifier),
        ("signature", core.OctetBitString),
        ("certs", Certificates, {"explicit": 0, "optional": True}),
    ]


class OCSPRequest(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("tbs_request", TBSRequest),
        ("optional_signature", Signature, {"explicit": 0, "optional": True}),
    ]


# ─────────────────────── OCSPResponse (RFC 6960 4.2.1) ───────────────────────


class OCSPResponseStatus(core.Enumerated):  # type: ignore[misc]
    _map = {
        0: "successful",
        1: "malformed_request",
        2: "internal_error",
        3: "try_later",
        5: "sig_required",
        6: "unauthorized",
    }


class ResponseBytes(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("response_type", core.ObjectIdentifier),
        ("response", core.OctetString),
    ]


class OCSPResponse(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("response_status", OCSPResponseStatus),
        ("response_bytes", ResponseBytes, {"explicit": 0, "optional": True}),
    ]


class CRLReason(core.Enumerated):  # type: ignore[misc]
    _map = {
        0: "unspecified",
        1: "key_compromise",
        2: "ca_compromise",
        3: "affiliation_changed",
        4: "superseded",
        5: "cessation_of_operation",
        6: "certificate_hold",
        8: "remove_from_crl",
        9: "privilege_withdrawn",
        10: "aa_compromise",
    }


class RevokedInfo(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("revocation_time", core.GeneralizedTime),
        ("revocation_reason", CRLReason, {"explicit": 0, "optional": True}),
    ]


class CertStatus(core.Choice):  # type: ignore[misc]
    _alternatives = [
        ("good", core.Null, {"implicit": 0}),
        ("revoked", RevokedInfo, {"implicit": 1}),
        ("unknown", core.Null, {"implicit": 2}),
    ]


class SingleResponse(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("cert_id", CertId),
        ("cert_status", CertStatus),
        ("this_update", core.GeneralizedTime),
        ("next_update", core.GeneralizedTime, {"explicit": 0, "optional": True}),
        ("single_extensions", Extensions, {"explicit": 1, "optional": True}),
    ]


class Responses(core.SequenceOf):  # type: ignore[misc]
    _child_spec = SingleResponse


class ResponderId(core.Choice):  # type: ignore[misc]
    _alternatives = [
        ("by_name", asn1_x509.Name, {"explicit": 1}),
        ("by_key", core.OctetString, {"explicit": 2}),
    ]


class ResponseData(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("version", Version, {"explicit": 0, "default": "v1"}),
        ("responder_id", core.Any),
        ("produced_at", core.GeneralizedTime),
        ("responses", Responses),
        ("response_extensions", Extensions, {"explicit": 1, "optional": True}),
    ]


class BasicOCSPResponse(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("tbs_response_data", ResponseData),
        ("signature_algorithm", AlgorithmIdentifier),
        ("signature", core.OctetBitString),
        ("certs", Certificates, {"explicit": 0, "optional": True}),
    ]


# ─────────────────────── RSASSA-PSS-params (RFC 4055) ───────────────────────
#
# hashAlgorithm, maskGenAlgorithm and saltLength carry SHA-1 defaults in the
# RFC; they are required here because SHA-1 PSS is not accepted anyway.


class PssParameters(core.Sequence):  # type: ignore[misc]
    _fields = [
        ("hash_algorithm", AlgorithmIdentifier, {"explicit": 0}),
        ("mask_gen_algorithm", AlgorithmIdentifier, {"explicit": 1}),
        ("salt_length", core.Integer, {"explicit": 2}),
        ("trailer_field", core.Integer, {"explicit": 3, "default": 1}),
    ]


# ─────────────────────── Helpers ───────────────────────


def raw_parameters(identifier: AlgorithmIdentifier) -> bytes | None:
    """DER of the parameters field, or None when the field is absent."""
    parameters = identifier["parameters"]
    if isinstance(parameters, core.Void):
        return None
    return parameters.dump()


def extensions_from_asn1(value: Extensions | core.Void) -> tuple[models.Extension, ...]:
    if isinstance(value, core.Void):
        return ()
    return tuple(
        models.Extension(
            oid=ext["extn_id"].dotted,
            value=ext["extn_value"].native,
            critical=bool(ext["critical"].native),
        )
        for ext in value
    )


def extensions_to_asn1(extensions: tuple[models.Extension, ...]) -> Extensions:
    return Extensions(
        [
            {"extn_id": ext.oid, "critical": ext.critical, "extn_value": ext.value}
            for ext in extensions
        ]
    )


def load_strict(spec: type[core.Asn1Value], der: bytes, what: str) -> core.Asn1Value:
    """
    Load `der` as `spec`, rejecting trailing bytes after the structure.

    Raises ParseError("trailing data in <what>") for leftovers; other decode
    problems surface as asn1crypto's ValueError.
    """
    value = spec.load(der)
    if len(value.dump()) != len(der):
        raise ParseError(f"trailing data in {what}")
    return value
