"""
Domain models — immutable value objects for OCSP requests and responses.

These are pure value objects with no behavior beyond small derived
properties. They are produced by one call (parse or create) and are
read-only afterwards.

All models are frozen dataclasses (immutable) following functional principles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum, unique
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cryptography import x509


@unique
class HashKind(Enum):
    """Hash functions that can appear in a CertID or a signature algorithm."""

    MD5 = "md5"
    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"

    @property
    def digest_size(self) -> int:
        return _DIGEST_SIZES[self]


_DIGEST_SIZES = {
    HashKind.MD5: 16,
    HashKind.SHA1: 20,
    HashKind.SHA256: 32,
    HashKind.SHA384: 48,
    HashKind.SHA512: 64,
}


@unique
class PublicKeyKind(Enum):
    RSA = "rsa"
    DSA = "dsa"
    ECDSA = "ecdsa"


@unique
class SignatureAlgorithm(Enum):
    """X.509 signature algorithms known to the registry."""

    UNKNOWN = "unknown"
    MD2_WITH_RSA = "md2_rsa"
    MD5_WITH_RSA = "md5_rsa"
    SHA1_WITH_RSA = "sha1_rsa"
    SHA256_WITH_RSA = "sha256_rsa"
    SHA384_WITH_RSA = "sha384_rsa"
    SHA512_WITH_RSA = "sha512_rsa"
    SHA256_WITH_RSA_PSS = "sha256_rsa_pss"
    SHA384_WITH_RSA_PSS = "sha384_rsa_pss"
    SHA512_WITH_RSA_PSS = "sha512_rsa_pss"
    DSA_WITH_SHA1 = "sha1_dsa"
    DSA_WITH_SHA256 = "sha256_dsa"
    ECDSA_WITH_SHA1 = "sha1_ecdsa"
    ECDSA_WITH_SHA256 = "sha256_ecdsa"
    ECDSA_WITH_SHA384 = "sha384_ecdsa"
    ECDSA_WITH_SHA512 = "sha512_ecdsa"


@unique
class ResponseStatus(IntEnum):
    """OCSPResponseStatus (RFC 6960 section 4.2.1). Value 4 is not used."""

    SUCCESSFUL = 0
    MALFORMED_REQUEST = 1
    INTERNAL_ERROR = 2
    TRY_LATER = 3
    SIG_REQUIRED = 5
    UNAUTHORIZED = 6

    @staticmethod
    def describe(code: int) -> str:
        """Human label for a raw status code, including codes outside the enum."""
        try:
            return _STATUS_LABELS[ResponseStatus(code)]
        except ValueError:
            return f"unknown OCSP status: {code}"


_STATUS_LABELS = {
    ResponseStatus.SUCCESSFUL: "success",
    ResponseStatus.MALFORMED_REQUEST: "malformed",
    ResponseStatus.INTERNAL_ERROR: "internal error",
    ResponseStatus.TRY_LATER: "try later",
    ResponseStatus.SIG_REQUIRED: "signature required",
    ResponseStatus.UNAUTHORIZED: "unauthorized",
}


@unique
class CertStatus(IntEnum):
    """Per-certificate status carried in a SingleResponse."""

    GOOD = 0
    REVOKED = 1
    UNKNOWN = 2


@unique
class RevocationReason(IntEnum):
    """CRLReason codes (RFC 5280 section 5.3.1). Value 7 is not used."""

    UNSPECIFIED = 0
    KEY_COMPROMISE = 1
    CA_COMPROMISE = 2
    AFFILIATION_CHANGED = 3
    SUPERSEDED = 4
    CESSATION_OF_OPERATION = 5
    CERTIFICATE_HOLD = 6
    REMOVE_FROM_CRL = 8
    PRIVILEGE_WITHDRAWN = 9
    AA_COMPROMISE = 10


@dataclass(frozen=True, slots=True)
class Extension:
    """
    A raw X.509 extension.

    `value` holds the contents of the extnValue OCTET STRING, undecoded.
    """

    oid: str
    value: bytes = field(repr=False)
    critical: bool = False


@dataclass(frozen=True, slots=True)
class AlgorithmIdentifier:
    """
    An AlgorithmIdentifier with its parameters kept as raw DER.

    `parameters` is None when the field is absent on the wire, and
    b"\\x05\\x00" when it is an explicit NULL.
    """

    oid: str
    parameters: bytes | None = None


@dataclass(frozen=True, slots=True)
class CertId:
    """Identifies the certificate under check by issuer hashes and serial."""

    hash_algorithm: AlgorithmIdentifier
    issuer_name_hash: bytes
    issuer_key_hash: bytes
    serial_number: int


@dataclass(frozen=True, slots=True)
class SignerParameters:
    """
    How a digest must be signed.

    When `pss` is set the salt length equals the digest size of `hash`.
    """

    hash: HashKind
    pss: bool = False

    @property
    def salt_length(self) -> int | None:
        return self.hash.digest_size if self.pss else None


@dataclass(frozen=True, slots=True)
class SigningParameters:
    """Resolved signer parameters plus the AlgorithmIdentifier to put on the wire."""

    signer: SignerParameters
    algorithm: SignatureAlgorithm
    identifier: AlgorithmIdentifier


@dataclass(frozen=True, slots=True)
class RequestOptions:
    """Options for building a request. `hash=None` selects the configured default."""

    hash: HashKind | None = None


@dataclass(frozen=True, slots=True)
class Request:
    """
    A single-certificate, unsigned OCSP request.

    Built directly by the caller or decoded by the request codec; only the
    first entry of a multi-entry requestList survives decoding.
    """

    hash_algorithm: HashKind
    issuer_name_hash: bytes
    issuer_key_hash: bytes
    serial_number: int
    extensions: tuple[Extension, ...] = ()


@dataclass(frozen=True, slots=True)
class ResponderName:
    """ResponderID byName — the DER of the responder's distinguished name."""

    raw: bytes


@dataclass(frozen=True, slots=True)
class ResponderKeyHash:
    """ResponderID byKey — SHA-1 of the responder's public key bits."""

    key_hash: bytes


ResponderId = ResponderName | ResponderKeyHash


@dataclass(frozen=True, slots=True)
class Response:
    """
    A parsed OCSP response for one certificate.

    `tbs_response_data` is the exact DER of ResponseData, the bytes that
    `signature` covers. `revoked_at` and `revocation_reason` only carry
    meaning when `status` is REVOKED.
    """

    raw: bytes = field(repr=False)
    status: CertStatus
    serial_number: int
    produced_at: datetime
    this_update: datetime
    tbs_response_data: bytes = field(repr=False)
    signature: bytes = field(repr=False)
    signature_algorithm: SignatureAlgorithm
    issuer_hash: HashKind
    responder_id: ResponderId
    next_update: datetime | None = None
    revoked_at: datetime | None = None
    revocation_reason: int = RevocationReason.UNSPECIFIED
    certificate: x509.Certificate | None = field(default=None, repr=False)
    extensions: tuple[Extension, ...] = ()
    response_extensions: tuple[Extension, ...] = ()

    @property
    def raw_responder_name(self) -> bytes | None:
        if isinstance(self.responder_id, ResponderName):
            return self.responder_id.raw
        return None

    @property
    def responder_key_hash(self) -> bytes | None:
        if isinstance(self.responder_id, ResponderKeyHash):
            return self.responder_id.key_hash
        return None


@dataclass(frozen=True, slots=True)
class ResponseTemplate:
    """
    Everything the response builder takes from the caller.

    `issuer_hash=None` means the configured default (SHA-1 out of the box);
    `signature_algorithm=None` lets the signing key pick its default.
    `extra_extensions` go to singleExtensions, `response_extra_extensions`
    to responseExtensions.
    """

    serial_number: int
    status: CertStatus
    this_update: datetime
    next_update: datetime | None = None
    revoked_at: datetime | None = None
    revocation_reason: int = RevocationReason.UNSPECIFIED
    issuer_hash: HashKind | None = None
    signature_algorithm: SignatureAlgorithm | None = None
    certificate: x509.Certificate | None = field(default=None, repr=False)
    extra_extensions: tuple[Extension, ...] = ()
    response_extra_extensions: tuple[Extension, ...] = ()
