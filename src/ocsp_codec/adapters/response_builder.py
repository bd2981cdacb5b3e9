"""
OCSP response builder adapter — template in, signed DER response out.

Adapter layer — implements the ResponseBuilder port using:
  - asn1crypto: BasicOCSPResponse / OCSPResponse schemas from asn1_schema
  - cryptography (PyCA): hashing, and private keys behind PrivateKeySigner

The builder never touches a private key itself: it hashes the encoded
ResponseData and hands the digest to a ResponseSigner. Everything it emits
is a single-entry basic response with a byName ResponderID.
"""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from asn1crypto import core
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed
from cryptography.hazmat.primitives.serialization import Encoding

from ocsp_codec.adapters import algorithms, asn1_schema, certificates
from ocsp_codec.adapters.request_codec import build_cert_id
from ocsp_codec.config import OcspSettings, get_settings
from ocsp_codec.domain.errors import VerificationError, capture
from ocsp_codec.domain.models import (
    CertStatus,
    HashKind,
    ResponseTemplate,
    RevocationReason,
    SignerParameters,
)
from ocsp_codec.domain.ports import ResponseSigner
from ocsp_codec.railway import Result

log = structlog.get_logger()


def _utc(value: datetime) -> datetime:
    """Whole-second UTC; naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).replace(microsecond=0)


def _produced_at() -> datetime:
    return datetime.now(UTC).replace(second=0, microsecond=0)


# ─────────────────────── Signer ───────────────────────


class PrivateKeySigner:
    """
    ResponseSigner backed by a cryptography RSA or EC private key.

    Signs a digest computed elsewhere (Prehashed). RSA uses PKCS#1 v1.5,
    or PSS with MGF1 over the same hash and salt = digest length.
    """

    def __init__(self, private_key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey) -> None:
        self._private_key = private_key

    def public_key(self) -> PublicKeyTypes:
        return self._private_key.public_key()

    def sign(self, digest: bytes, params: SignerParameters) -> bytes:
        chosen_hash = algorithms.hash_algorithm(params.hash)
        prehashed = Prehashed(chosen_hash)

        if isinstance(self._private_key, rsa.RSAPrivateKey):
            pad: padding.AsymmetricPadding
            if params.pss:
                assert params.salt_length is not None
                pad = padding.PSS(mgf=padding.MGF1(chosen_hash), salt_length=params.salt_length)
            else:
                pad = padding.PKCS1v15()
            return self._private_key.sign(digest, pad, prehashed)

        if isinstance(self._private_key, ec.EllipticCurvePrivateKey):
            return self._private_key.sign(digest, ec.ECDSA(prehashed))

        raise VerificationError("only RSA and ECDSA keys supported")


# ─────────────────────── Builder ───────────────────────


def _revocation_reason(value: int) -> RevocationReason:
    try:
        return RevocationReason(value)
    except ValueError:
        raise VerificationError(f"invalid revocation reason: {value}") from None


def _cert_status(template: ResponseTemplate) -> asn1_schema.CertStatus:
    """Encode the template status; raises VerificationError for unusable revocation data."""
    match template.status:
        case CertStatus.GOOD:
            return asn1_schema.CertStatus(name="good", value=core.Null())
        case CertStatus.UNKNOWN:
            return asn1_schema.CertStatus(name="unknown", value=core.Null())
        case CertStatus.REVOKED:
            if template.revoked_at is None:
                raise VerificationError("revoked status requires revoked_at")
            reason = _revocation_reason(template.revocation_reason)
            revoked_info: dict[str, object] = {"revocation_time": _utc(template.revoked_at)}
            # reason 0 (unspecified) is left out
            if reason is not RevocationReason.UNSPECIFIED:
                revoked_info["revocation_reason"] = int(reason)
            return asn1_schema.CertStatus(
                name="revoked",
                value=asn1_schema.RevokedInfo(revoked_info),
            )
    raise VerificationError(f"unknown certificate status: {template.status!r}")


class OcspResponseBuilder:
    """
    Produce signed OCSP responses.

    Implements the ResponseBuilder port.
    All exceptions are caught at this adapter boundary and returned as Result failures.
    """

    def __init__(self, settings: OcspSettings | None = None) -> None:
        self._settings = settings if settings is not None else get_settings()

    def create(
        self,
        issuer: x509.Certificate,
        responder_cert: x509.Certificate,
        template: ResponseTemplate,
        signer: ResponseSigner,
    ) -> Result[bytes]:
        """
        Build and sign a successful basic OCSP response for `template`.

        The CertID is computed from `issuer` with `template.issuer_hash`
        (configured default: SHA-1). The responder is identified by the
        subject of `responder_cert`. The signature algorithm comes from
        `template.signature_algorithm`, or from the signer's key type.
        """
        return capture(
            lambda: self._do_create(issuer, responder_cert, template, signer),
            "Failed to create OCSP response",
        )

    def _issuer_hash(self, template: ResponseTemplate) -> HashKind:
        hash_kind = template.issuer_hash if template.issuer_hash is not None else self._settings.issuer_hash
        if algorithms.oid_for_hash(hash_kind) is None:
            raise VerificationError("unsupported issuer hash algorithm")
        if not algorithms.hash_available(hash_kind):
            raise VerificationError(f"issuer hash algorithm {hash_kind.name} not available")
        return hash_kind

    def _do_create(
        self,
        issuer: x509.Certificate,
        responder_cert: x509.Certificate,
        template: ResponseTemplate,
        signer: ResponseSigner,
    ) -> bytes:
        cert_status = _cert_status(template)
        hash_kind = self._issuer_hash(template)
        issuer_name_hash, issuer_key_hash = certificates.issuer_hashes(issuer, hash_kind)

        single_response: dict[str, object] = {
            "cert_id": build_cert_id(hash_kind, issuer_name_hash, issuer_key_hash, template.serial_number),
            "cert_status": cert_status,
            "this_update": _utc(template.this_update),
        }
        if template.next_update is not None:
            single_response["next_update"] = _utc(template.next_update)
        if template.extra_extensions:
            single_response["single_extensions"] = asn1_schema.extensions_to_asn1(template.extra_extensions)

        responder_id = asn1_schema.ResponderId(
            name="by_name",
            value=asn1_x509.Name.load(certificates.raw_subject(responder_cert)),
        )
        response_data: dict[str, object] = {
            "responder_id": core.Any.load(responder_id.dump()),
            "produced_at": _produced_at(),
            "responses": [single_response],
        }
        if template.response_extra_extensions:
            response_data["response_extensions"] = asn1_schema.extensions_to_asn1(
                template.response_extra_extensions
            )
        tbs = asn1_schema.ResponseData(response_data)
        tbs_der = tbs.dump()

        signing = algorithms.signing_params_for_public_key(
            signer.public_key(),
            template.signature_algorithm,
        )
        signature = signer.sign(algorithms.digest(signing.signer.hash, tbs_der), signing.signer)

        basic: dict[str, object] = {
            "tbs_response_data": tbs,
            "signature_algorithm": algorithms.identifier_to_asn1(signing.identifier),
            "signature": signature,
        }
        if template.certificate is not None:
            basic["certs"] = [core.Any.load(template.certificate.public_bytes(Encoding.DER))]

        envelope = asn1_schema.OCSPResponse(
            {
                "response_status": "successful",
                "response_bytes": {
                    "response_type": asn1_schema.ID_PKIX_OCSP_BASIC,
                    "response": asn1_schema.BasicOCSPResponse(basic).dump(),
                },
            }
        )

        log.info(
            "ocsp.response.created",
            serial=hex(template.serial_number),
            status=template.status.name,
            signature_algorithm=signing.algorithm.value,
            issuer_hash=hash_kind.value,
            embedded_certificate=template.certificate is not None,
        )
        return envelope.dump()
