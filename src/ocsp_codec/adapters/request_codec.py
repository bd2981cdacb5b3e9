"""
OCSP request codec — build, encode and decode single-certificate requests.

Adapter layer — implements the RequestCodec port using:
  - cryptography: the certificates a request is built from
  - asn1crypto: the OCSPRequest schema from asn1_schema

Only what a relying party actually sends is supported: one CertID, no
requestorName, no signature. A decoded request keeps the first entry of
its requestList and the request-level extensions.
"""

from __future__ import annotations

import structlog
from asn1crypto import core
from cryptography import x509

from ocsp_codec.adapters import algorithms, asn1_schema, certificates
from ocsp_codec.config import OcspSettings, get_settings
from ocsp_codec.domain.errors import ParseError, VerificationError, capture
from ocsp_codec.domain.models import AlgorithmIdentifier, HashKind, Request, RequestOptions
from ocsp_codec.railway import Result

log = structlog.get_logger()


def require_cert_id_hash(hash_kind: HashKind) -> str:
    """OID for `hash_kind`, which must be a CertID hash this process can compute."""
    oid = algorithms.oid_for_hash(hash_kind)
    if oid is None or not algorithms.hash_available(hash_kind):
        raise VerificationError("unsupported hash algorithm")
    return oid


def build_cert_id(
    hash_kind: HashKind,
    issuer_name_hash: bytes,
    issuer_key_hash: bytes,
    serial_number: int,
) -> asn1_schema.CertId:
    """CertID with explicit NULL hash parameters."""
    hash_algorithm = AlgorithmIdentifier(
        oid=require_cert_id_hash(hash_kind),
        parameters=asn1_schema.NULL_PARAMETERS,
    )
    return asn1_schema.CertId(
        {
            "hash_algorithm": algorithms.identifier_to_asn1(hash_algorithm),
            "issuer_name_hash": issuer_name_hash,
            "issuer_key_hash": issuer_key_hash,
            "serial_number": serial_number,
        }
    )


class OcspRequestCodec:
    """
    Build and decode OCSP requests.

    Implements the RequestCodec port.
    All exceptions are caught at this adapter boundary and returned as Result failures.
    """

    def __init__(self, settings: OcspSettings | None = None) -> None:
        self._settings = settings if settings is not None else get_settings()

    def create(
        self,
        cert: x509.Certificate,
        issuer: x509.Certificate,
        options: RequestOptions | None = None,
    ) -> Result[bytes]:
        """
        DER request asking about `cert`, issued by `issuer`.

        The CertID hash is `options.hash`, or the configured default (SHA-1).
        """
        return capture(
            lambda: self._do_create(cert, issuer, options),
            "Failed to create OCSP request",
        )

    def marshal(self, request: Request) -> Result[bytes]:
        """Encode `request` as an unsigned single-entry OCSPRequest."""
        return capture(lambda: self._encode(request), "Failed to encode OCSP request")

    def parse(self, der: bytes) -> Result[Request]:
        """Decode a DER OCSPRequest, keeping only its first entry."""
        return capture(lambda: self._do_parse(der), "Failed to parse OCSP request")

    def _do_create(
        self,
        cert: x509.Certificate,
        issuer: x509.Certificate,
        options: RequestOptions | None,
    ) -> bytes:
        hash_kind = self._settings.request_hash
        if options is not None and options.hash is not None:
            hash_kind = options.hash
        require_cert_id_hash(hash_kind)

        issuer_name_hash, issuer_key_hash = certificates.issuer_hashes(issuer, hash_kind)
        return self._encode(
            Request(
                hash_algorithm=hash_kind,
                issuer_name_hash=issuer_name_hash,
                issuer_key_hash=issuer_key_hash,
                serial_number=cert.serial_number,
            )
        )

    def _encode(self, request: Request) -> bytes:
        cert_id = build_cert_id(
            request.hash_algorithm,
            request.issuer_name_hash,
            request.issuer_key_hash,
            request.serial_number,
        )
        tbs_request: dict[str, object] = {"request_list": [{"req_cert": cert_id}]}
        if request.extensions:
            tbs_request["request_extensions"] = asn1_schema.extensions_to_asn1(request.extensions)
        return asn1_schema.OCSPRequest({"tbs_request": tbs_request}).dump()

    def _do_parse(self, der: bytes) -> Request:
        ocsp_request = asn1_schema.load_strict(asn1_schema.OCSPRequest, der, "OCSP request")
        if not isinstance(ocsp_request["optional_signature"], core.Void):
            raise ParseError("signed OCSP requests are not supported")

        tbs_request = ocsp_request["tbs_request"]
        request_list = tbs_request["request_list"]
        if len(request_list) == 0:
            raise ParseError("OCSP request contains no request body")

        cert_id = request_list[0]["req_cert"]
        hash_kind = algorithms.hash_for_oid(cert_id["hash_algorithm"]["algorithm"].dotted)
        if hash_kind is None:
            raise ParseError("OCSP request uses unknown hash function")

        request = Request(
            hash_algorithm=hash_kind,
            issuer_name_hash=cert_id["issuer_name_hash"].native,
            issuer_key_hash=cert_id["issuer_key_hash"].native,
            serial_number=cert_id["serial_number"].native,
            extensions=asn1_schema.extensions_from_asn1(tbs_request["request_extensions"]),
        )

        log.info(
            "ocsp.request.parsed",
            serial=hex(request.serial_number),
            hash=hash_kind.value,
            entries=len(request_list),
            extensions=len(request.extensions),
        )
        return request
