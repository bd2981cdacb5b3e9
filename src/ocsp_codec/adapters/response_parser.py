"""
OCSP response parser adapter — envelope unwrapping, signature checks, status extraction.

Adapter layer — implements the ResponseParser port using:
  - asn1crypto: OCSPResponse / BasicOCSPResponse schemas from asn1_schema
  - cryptography (PyCA): the embedded responder certificate and public keys

Pipeline:
  raw DER bytes
    → OCSPResponse envelope, responseStatus must be successful
    → BasicOCSPResponse (id-pkix-ocsp-basic only)
    → pick the SingleResponse (first, or the one matching a certificate)
    → responderID by raw tag, signature algorithm by registry lookup
    → verify: embedded certificate signs the response, issuer signs the
      embedded certificate (or, without one, the issuer signs the response)
    → Response (domain model)

A responder status other than successful is reported on its own failure
track (RESPONSE_STATUS_ERROR) with the numeric status attached, so callers
can tell "try later" from garbage.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from asn1crypto import core, parser
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

from ocsp_codec.adapters import algorithms, asn1_schema, certificates
from ocsp_codec.domain.errors import ParseError, ResponseError, VerificationError, capture
from ocsp_codec.domain.models import (
    CertStatus,
    ResponderId,
    ResponderKeyHash,
    ResponderName,
    Response,
    ResponseStatus,
    RevocationReason,
    SignatureAlgorithm,
)
from ocsp_codec.railway import Result

log = structlog.get_logger()

_CONTEXT_CLASS = 2
_BY_NAME_TAG = 1
_BY_KEY_TAG = 2

_CERT_STATUSES = {
    "good": CertStatus.GOOD,
    "revoked": CertStatus.REVOKED,
    "unknown": CertStatus.UNKNOWN,
}


# ─────────────────────── Field Extraction ───────────────────────


def _select_single_response(
    responses: asn1_schema.Responses,
    cert: x509.Certificate | None,
) -> asn1_schema.SingleResponse:
    """
    Choose the SingleResponse to report on.

    Without a certificate the response must carry exactly one entry. With
    one, the first entry whose serial matches is taken (issuer hashes are
    not compared).
    """
    count = len(responses)
    if count == 0 or (cert is None and count > 1):
        raise ParseError("OCSP response contains bad number of responses")
    if cert is None:
        return responses[0]

    for single in responses:
        if single["cert_id"]["serial_number"].native == cert.serial_number:
            return single
    raise ParseError("no response matching the supplied certificate")


def _parse_responder_id(raw: bytes) -> ResponderId:
    """
    Dispatch on the raw tag of ResponderID: [1] byName, [2] byKey.

    The Name is only checked for well-formedness; its exact DER is kept.
    """
    class_, _method, tag, _header, contents, _trailer = parser.parse(raw, strict=True)
    if class_ != _CONTEXT_CLASS:
        raise ParseError("invalid responder id tag")

    if tag == _BY_NAME_TAG:
        try:
            # .native walks every RDN, so a broken Name fails here
            asn1_x509.Name.load(contents, strict=True).native
        except (ValueError, TypeError) as e:
            raise ParseError("invalid responder name") from e
        return ResponderName(raw=contents)

    if tag == _BY_KEY_TAG:
        try:
            key_hash = core.OctetString.load(contents, strict=True).native
        except (ValueError, TypeError) as e:
            raise ParseError("invalid responder key hash") from e
        return ResponderKeyHash(key_hash=key_hash)

    raise ParseError("invalid responder id tag")


def _revocation(cert_status: asn1_schema.CertStatus) -> tuple[CertStatus, datetime | None, int]:
    """(status, revoked_at, reason) from a CertStatus CHOICE."""
    status = _CERT_STATUSES[cert_status.name]
    if status is not CertStatus.REVOKED:
        return status, None, RevocationReason.UNSPECIFIED

    info = cert_status.chosen
    reason = info["revocation_reason"]
    reason_code = RevocationReason.UNSPECIFIED if isinstance(reason, core.Void) else int(reason)
    return status, info["revocation_time"].native, reason_code


# ─────────────────────── Signature Checks ───────────────────────


@dataclass(frozen=True, slots=True)
class _SignedData:
    """What a response signature check needs: algorithm, signed bytes, signature."""

    algorithm: SignatureAlgorithm
    tbs: bytes
    signature: bytes


def _verify_response(signed: _SignedData, public_key: PublicKeyTypes, prefix: str) -> None:
    try:
        algorithms.check_signature(signed.algorithm, signed.tbs, signed.signature, public_key)
    except VerificationError as e:
        raise VerificationError(f"{prefix}{e}") from e


def _verify_embedded_certificate(
    signed: _SignedData,
    embedded: x509.Certificate,
    issuer: x509.Certificate | None,
) -> None:
    _verify_response(signed, embedded.public_key(), "bad signature on embedded certificate: ")
    if issuer is None:
        return
    try:
        certificates.verify_issued_by(embedded, issuer)
    except VerificationError as e:
        raise VerificationError(f"bad OCSP signature: {e}") from e


# ─────────────────────── Public Parser Class ───────────────────────


class OcspResponseParser:
    """
    Parse and verify DER OCSP responses.

    Implements the ResponseParser port.
    All exceptions are caught at this adapter boundary and returned as Result failures.
    """

    def parse(self, der: bytes, issuer: x509.Certificate | None = None) -> Result[Response]:
        """
        Parse a response that must contain exactly one SingleResponse.

        With `issuer`, the signature chain is checked as described in
        `parse_for_cert`; without it only an embedded certificate (if any)
        is checked against the response.
        """
        return self.parse_for_cert(der, None, issuer)

    def parse_for_cert(
        self,
        der: bytes,
        cert: x509.Certificate | None = None,
        issuer: x509.Certificate | None = None,
    ) -> Result[Response]:
        """
        Parse a response, reporting on the entry for `cert` when given.

        Verification:
          1. An embedded certificate must have signed the response
             ("bad signature on embedded certificate: ...")
          2. With `issuer`, the issuer must have signed that certificate
             ("bad OCSP signature: ...")
          3. Without an embedded certificate, `issuer` (if given) must have
             signed the response ("bad OCSP signature: ...")

        Failure tiers: MALFORMED_ERROR, RESPONSE_STATUS_ERROR (with
        `response_status` set) and VALIDATION_ERROR.
        """
        return capture(
            lambda: self._do_parse(der, cert, issuer),
            "Failed to parse OCSP response",
        )

    def check_signature_from(self, response: Response, issuer: x509.Certificate) -> Result[Response]:
        """Verify an already parsed response directly against `issuer`."""

        def verify() -> Response:
            signed = _SignedData(
                response.signature_algorithm,
                response.tbs_response_data,
                response.signature,
            )
            _verify_response(signed, issuer.public_key(), "bad OCSP signature: ")
            return response

        return capture(verify, "Failed to verify OCSP response")

    def _do_parse(
        self,
        der: bytes,
        cert: x509.Certificate | None,
        issuer: x509.Certificate | None,
    ) -> Response:
        # Step 1: envelope and responder status
        envelope = asn1_schema.load_strict(asn1_schema.OCSPResponse, der, "OCSP response")
        status = int(envelope["response_status"])
        if status != ResponseStatus.SUCCESSFUL:
            raise ResponseError(status)

        response_bytes = envelope["response_bytes"]
        if (
            isinstance(response_bytes, core.Void)
            or response_bytes["response_type"].dotted != asn1_schema.ID_PKIX_OCSP_BASIC
        ):
            raise ParseError("bad OCSP response type")

        # Step 2: basic response and the entry to report on
        basic = asn1_schema.load_strict(
            asn1_schema.BasicOCSPResponse,
            response_bytes["response"].native,
            "OCSP response",
        )
        tbs = basic["tbs_response_data"]
        single = _select_single_response(tbs["responses"], cert)

        # Step 3: signature algorithm and responder identity
        identifier = algorithms.identifier_from_asn1(basic["signature_algorithm"])
        signed = _SignedData(
            algorithms.signature_algorithm_from_identifier(identifier),
            tbs.dump(),
            basic["signature"].native,
        )
        responder_id = _parse_responder_id(tbs["responder_id"].dump())

        # Step 4: signatures
        embedded: x509.Certificate | None = None
        certs = basic["certs"]
        if not isinstance(certs, core.Void) and len(certs) > 0:
            embedded = x509.load_der_x509_certificate(certs[0].dump())
            _verify_embedded_certificate(signed, embedded, issuer)
        elif issuer is not None:
            _verify_response(signed, issuer.public_key(), "bad OCSP signature: ")

        # Step 5: single response contents
        extensions = asn1_schema.extensions_from_asn1(single["single_extensions"])
        if any(ext.critical for ext in extensions):
            raise ParseError("unsupported critical extension")

        cert_id = single["cert_id"]
        issuer_hash = algorithms.hash_for_oid(cert_id["hash_algorithm"]["algorithm"].dotted)
        if issuer_hash is None:
            raise ParseError("unsupported issuer hash algorithm")

        cert_status, revoked_at, reason = _revocation(single["cert_status"])

        response = Response(
            raw=der,
            status=cert_status,
            serial_number=cert_id["serial_number"].native,
            produced_at=tbs["produced_at"].native,
            this_update=single["this_update"].native,
            next_update=single["next_update"].native,
            revoked_at=revoked_at,
            revocation_reason=reason,
            tbs_response_data=signed.tbs,
            signature=signed.signature,
            signature_algorithm=signed.algorithm,
            issuer_hash=issuer_hash,
            responder_id=responder_id,
            certificate=embedded,
            extensions=extensions,
            response_extensions=asn1_schema.extensions_from_asn1(tbs["response_extensions"]),
        )

        log.info(
            "ocsp.response.parsed",
            serial=hex(response.serial_number),
            status=cert_status.name,
            entries=len(tbs["responses"]),
            signature_algorithm=signed.algorithm.value,
            embedded_certificate=embedded is not None,
            verified=embedded is not None or issuer is not None,
        )
        return response
