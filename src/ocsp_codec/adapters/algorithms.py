"""
Signature algorithm registry — OIDs ↔ (key kind, hash, PSS) and back.

The registry is a fixed table built at import time and never mutated.
It is used in three directions:

  - signing: pick signer parameters and the AlgorithmIdentifier to emit
    for a key, optionally honouring a requested algorithm
  - parsing: turn the AlgorithmIdentifier of a response (or of an
    embedded certificate) back into a SignatureAlgorithm
  - verifying: check a signature with a cryptography public key

RSASSA-PSS is the awkward one: the OID alone says nothing about the hash,
so the parameters are decoded and only the three RFC 3447 profiles
(SHA-256/384/512, MGF1 with the same hash, salt = digest length,
trailer 1) are recognised. Everything else is UNKNOWN, never an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

import structlog
from asn1crypto import core
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

from ocsp_codec.adapters import asn1_schema
from ocsp_codec.domain.errors import VerificationError
from ocsp_codec.domain.models import (
    AlgorithmIdentifier,
    HashKind,
    PublicKeyKind,
    SignatureAlgorithm,
    SignerParameters,
    SigningParameters,
)

log = structlog.get_logger()

OID_RSASSA_PSS = "1.2.840.113549.1.1.10"
OID_MGF1 = "1.2.840.113549.1.1.8"

# ─────────────────────── Hashes ───────────────────────

HASH_OIDS: MappingProxyType[HashKind, str] = MappingProxyType(
    {
        HashKind.SHA1: "1.3.14.3.2.26",
        HashKind.SHA256: "2.16.840.1.101.3.4.2.1",
        HashKind.SHA384: "2.16.840.1.101.3.4.2.2",
        HashKind.SHA512: "2.16.840.1.101.3.4.2.3",
    }
)

_HASHES_BY_OID = MappingProxyType({oid: kind for kind, oid in HASH_OIDS.items()})

_HASH_CLASSES: MappingProxyType[HashKind, type[hashes.HashAlgorithm]] = MappingProxyType(
    {
        HashKind.MD5: hashes.MD5,
        HashKind.SHA1: hashes.SHA1,
        HashKind.SHA256: hashes.SHA256,
        HashKind.SHA384: hashes.SHA384,
        HashKind.SHA512: hashes.SHA512,
    }
)


def hash_for_oid(oid: str) -> HashKind | None:
    return _HASHES_BY_OID.get(oid)


def oid_for_hash(kind: HashKind) -> str | None:
    return HASH_OIDS.get(kind)


def hash_algorithm(kind: HashKind) -> hashes.HashAlgorithm:
    return _HASH_CLASSES[kind]()


def hash_available(kind: HashKind) -> bool:
    """Whether the cryptography backend in this process can compute `kind`."""
    return default_backend().hash_supported(hash_algorithm(kind))


def digest(kind: HashKind, data: bytes) -> bytes:
    h = hashes.Hash(hash_algorithm(kind))
    h.update(data)
    return h.finalize()


# ─────────────────────── Registry ───────────────────────

# RSASSA-PSS-params (RFC 3447 A.2.3): hashAlgorithm = SHA-2 with NULL
# parameters, maskGenAlgorithm = MGF1 over the same hash, saltLength =
# digest length, trailerField left at its default.
PSS_PARAMETERS_SHA256 = bytes.fromhex(
    "3034a00f300d06096086480165030402010500a11c301a06092a864886f70d010108"
    "300d06096086480165030402010500a203020120"
)
PSS_PARAMETERS_SHA384 = bytes.fromhex(
    "3034a00f300d06096086480165030402020500a11c301a06092a864886f70d010108"
    "300d06096086480165030402020500a203020130"
)
PSS_PARAMETERS_SHA512 = bytes.fromhex(
    "3034a00f300d06096086480165030402030500a11c301a06092a864886f70d010108"
    "300d06096086480165030402030500a203020140"
)


@dataclass(frozen=True, slots=True)
class AlgorithmDetails:
    algorithm: SignatureAlgorithm
    oid: str
    parameters: bytes | None
    key_kind: PublicKeyKind
    hash: HashKind | None
    is_pss: bool = False

    @property
    def identifier(self) -> AlgorithmIdentifier:
        return AlgorithmIdentifier(oid=self.oid, parameters=self.parameters)


_NULL = asn1_schema.NULL_PARAMETERS

SIGNATURE_ALGORITHMS: tuple[AlgorithmDetails, ...] = (
    # MD2 has no usable hash: it can be parsed, never signed or verified.
    AlgorithmDetails(SignatureAlgorithm.MD2_WITH_RSA, "1.2.840.113549.1.1.2", _NULL, PublicKeyKind.RSA, None),
    AlgorithmDetails(SignatureAlgorithm.MD5_WITH_RSA, "1.2.840.113549.1.1.4", _NULL, PublicKeyKind.RSA, HashKind.MD5),
    AlgorithmDetails(SignatureAlgorithm.SHA1_WITH_RSA, "1.2.840.113549.1.1.5", _NULL, PublicKeyKind.RSA, HashKind.SHA1),
    AlgorithmDetails(SignatureAlgorithm.SHA256_WITH_RSA, "1.2.840.113549.1.1.11", _NULL, PublicKeyKind.RSA, HashKind.SHA256),
    AlgorithmDetails(SignatureAlgorithm.SHA384_WITH_RSA, "1.2.840.113549.1.1.12", _NULL, PublicKeyKind.RSA, HashKind.SHA384),
    AlgorithmDetails(SignatureAlgorithm.SHA512_WITH_RSA, "1.2.840.113549.1.1.13", _NULL, PublicKeyKind.RSA, HashKind.SHA512),
    AlgorithmDetails(SignatureAlgorithm.SHA256_WITH_RSA_PSS, OID_RSASSA_PSS, PSS_PARAMETERS_SHA256, PublicKeyKind.RSA, HashKind.SHA256, True),
    AlgorithmDetails(SignatureAlgorithm.SHA384_WITH_RSA_PSS, OID_RSASSA_PSS, PSS_PARAMETERS_SHA384, PublicKeyKind.RSA, HashKind.SHA384, True),
    AlgorithmDetails(SignatureAlgorithm.SHA512_WITH_RSA_PSS, OID_RSASSA_PSS, PSS_PARAMETERS_SHA512, PublicKeyKind.RSA, HashKind.SHA512, True),
    AlgorithmDetails(SignatureAlgorithm.DSA_WITH_SHA1, "1.2.840.10040.4.3", None, PublicKeyKind.DSA, HashKind.SHA1),
    AlgorithmDetails(SignatureAlgorithm.DSA_WITH_SHA256, "2.16.840.1.101.3.4.3.2", None, PublicKeyKind.DSA, HashKind.SHA256),
    AlgorithmDetails(SignatureAlgorithm.ECDSA_WITH_SHA1, "1.2.840.10045.4.1", None, PublicKeyKind.ECDSA, HashKind.SHA1),
    AlgorithmDetails(SignatureAlgorithm.ECDSA_WITH_SHA256, "1.2.840.10045.4.3.2", None, PublicKeyKind.ECDSA, HashKind.SHA256),
    AlgorithmDetails(SignatureAlgorithm.ECDSA_WITH_SHA384, "1.2.840.10045.4.3.3", None, PublicKeyKind.ECDSA, HashKind.SHA384),
    AlgorithmDetails(SignatureAlgorithm.ECDSA_WITH_SHA512, "1.2.840.10045.4.3.4", None, PublicKeyKind.ECDSA, HashKind.SHA512),
)

_DETAILS_BY_ALGORITHM = MappingProxyType({d.algorithm: d for d in SIGNATURE_ALGORITHMS})

_ALGORITHMS_BY_OID = MappingProxyType(
    {d.oid: d.algorithm for d in SIGNATURE_ALGORITHMS if not d.is_pss}
)

_PSS_BY_HASH_AND_SALT = MappingProxyType(
    {
        (HASH_OIDS[HashKind.SHA256], 32): SignatureAlgorithm.SHA256_WITH_RSA_PSS,
        (HASH_OIDS[HashKind.SHA384], 48): SignatureAlgorithm.SHA384_WITH_RSA_PSS,
        (HASH_OIDS[HashKind.SHA512], 64): SignatureAlgorithm.SHA512_WITH_RSA_PSS,
    }
)

_CURVE_HASHES = MappingProxyType(
    {
        "secp224r1": (HashKind.SHA256, SignatureAlgorithm.ECDSA_WITH_SHA256),
        "secp256r1": (HashKind.SHA256, SignatureAlgorithm.ECDSA_WITH_SHA256),
        "secp384r1": (HashKind.SHA384, SignatureAlgorithm.ECDSA_WITH_SHA384),
        "secp521r1": (HashKind.SHA512, SignatureAlgorithm.ECDSA_WITH_SHA512),
    }
)


def identifier_from_asn1(value: asn1_schema.AlgorithmIdentifier) -> AlgorithmIdentifier:
    return AlgorithmIdentifier(
        oid=value["algorithm"].dotted,
        parameters=asn1_schema.raw_parameters(value),
    )


def identifier_to_asn1(identifier: AlgorithmIdentifier) -> asn1_schema.AlgorithmIdentifier:
    fields: dict[str, object] = {"algorithm": identifier.oid}
    if identifier.parameters is not None:
        fields["parameters"] = core.Any.load(identifier.parameters)
    return asn1_schema.AlgorithmIdentifier(fields)


def details_for(algorithm: SignatureAlgorithm) -> AlgorithmDetails | None:
    return _DETAILS_BY_ALGORITHM.get(algorithm)


def public_key_kind(public_key: object) -> PublicKeyKind | None:
    """Classify a cryptography public key; None for anything unsupported."""
    if isinstance(public_key, rsa.RSAPublicKey):
        return PublicKeyKind.RSA
    if isinstance(public_key, ec.EllipticCurvePublicKey):
        return PublicKeyKind.ECDSA
    if isinstance(public_key, dsa.DSAPublicKey):
        return PublicKeyKind.DSA
    return None


# ─────────────────────── Signing ───────────────────────


def signing_params_for_public_key(
    public_key: PublicKeyTypes,
    requested: SignatureAlgorithm | None = None,
) -> SigningParameters:
    """
    Resolve how to sign with the private half of `public_key`.

    Without a request: RSA signs SHA-256 PKCS#1 v1.5, ECDSA picks the hash
    from the curve size. A requested algorithm must belong to the same key
    kind and name a real hash. Only RSA and ECDSA keys can sign.
    """
    match public_key_kind(public_key):
        case PublicKeyKind.RSA:
            key_kind = PublicKeyKind.RSA
            default = _DETAILS_BY_ALGORITHM[SignatureAlgorithm.SHA256_WITH_RSA]
            params = SigningParameters(
                signer=SignerParameters(hash=HashKind.SHA256),
                algorithm=default.algorithm,
                identifier=default.identifier,
            )
        case PublicKeyKind.ECDSA:
            key_kind = PublicKeyKind.ECDSA
            curve_name = public_key.curve.name  # type: ignore[union-attr]
            if curve_name not in _CURVE_HASHES:
                raise VerificationError(f"unknown elliptic curve: {curve_name}")
            hash_kind, algorithm = _CURVE_HASHES[curve_name]
            params = SigningParameters(
                signer=SignerParameters(hash=hash_kind),
                algorithm=algorithm,
                identifier=_DETAILS_BY_ALGORITHM[algorithm].identifier,
            )
        case _:
            raise VerificationError("only RSA and ECDSA keys supported")

    if requested is None or requested is SignatureAlgorithm.UNKNOWN:
        return params

    details = details_for(requested)
    if details is None:
        raise VerificationError("unknown SignatureAlgorithm")
    if details.key_kind is not key_kind:
        raise VerificationError("requested SignatureAlgorithm does not match private key type")
    if details.hash is None:
        raise VerificationError("cannot sign with hash function requested")

    return SigningParameters(
        signer=SignerParameters(hash=details.hash, pss=details.is_pss),
        algorithm=details.algorithm,
        identifier=details.identifier,
    )


# ─────────────────────── Parsing ───────────────────────


def signature_algorithm_from_identifier(identifier: AlgorithmIdentifier) -> SignatureAlgorithm:
    """Map an AlgorithmIdentifier to a SignatureAlgorithm, UNKNOWN if unrecognised."""
    if identifier.oid != OID_RSASSA_PSS:
        return _ALGORITHMS_BY_OID.get(identifier.oid, SignatureAlgorithm.UNKNOWN)
    return _pss_algorithm(identifier.parameters)


def _absent_or_null(parameters: bytes | None) -> bool:
    return parameters is None or parameters == asn1_schema.NULL_PARAMETERS


def _pss_algorithm(parameters: bytes | None) -> SignatureAlgorithm:
    if parameters is None:
        return SignatureAlgorithm.UNKNOWN
    try:
        pss = asn1_schema.PssParameters.load(parameters, strict=True)
        hash_ai = pss["hash_algorithm"]
        mgf_ai = pss["mask_gen_algorithm"]
        mgf_parameters = asn1_schema.raw_parameters(mgf_ai)
        if mgf_parameters is None:
            return SignatureAlgorithm.UNKNOWN
        mgf1_hash = asn1_schema.AlgorithmIdentifier.load(mgf_parameters, strict=True)

        hash_oid = hash_ai["algorithm"].dotted
        profile_ok = (
            _absent_or_null(asn1_schema.raw_parameters(hash_ai))
            and mgf_ai["algorithm"].dotted == OID_MGF1
            and mgf1_hash["algorithm"].dotted == hash_oid
            and _absent_or_null(asn1_schema.raw_parameters(mgf1_hash))
            and pss["trailer_field"].native == 1
        )
        salt_length = pss["salt_length"].native
    except (ValueError, TypeError) as e:
        log.debug("ocsp.algorithm.pss_undecodable", reason=str(e))
        return SignatureAlgorithm.UNKNOWN

    if not profile_ok:
        log.debug("ocsp.algorithm.pss_profile_rejected", hash_oid=hash_oid)
        return SignatureAlgorithm.UNKNOWN
    return _PSS_BY_HASH_AND_SALT.get((hash_oid, salt_length), SignatureAlgorithm.UNKNOWN)


# ─────────────────────── Verifying ───────────────────────


def check_signature(
    algorithm: SignatureAlgorithm,
    signed: bytes,
    signature: bytes,
    public_key: PublicKeyTypes,
) -> None:
    """
    Verify `signature` over `signed` with `public_key`.

    Raises VerificationError when the algorithm is unknown or insecure
    (MD2, MD5), when it does not fit the key, or when the signature is bad.
    """
    details = details_for(algorithm)
    if details is None:
        raise VerificationError("cannot verify signature: algorithm unimplemented")
    if details.hash is None or details.hash is HashKind.MD5:
        raise VerificationError(f"cannot verify signature: insecure algorithm {algorithm.name}")

    key_kind = public_key_kind(public_key)
    if key_kind is not details.key_kind:
        raise VerificationError("signature algorithm does not match public key type")

    chosen_hash = hash_algorithm(details.hash)
    try:
        match key_kind:
            case PublicKeyKind.RSA:
                pad: padding.AsymmetricPadding
                if details.is_pss:
                    pad = padding.PSS(
                        mgf=padding.MGF1(chosen_hash),
                        salt_length=details.hash.digest_size,
                    )
                else:
                    pad = padding.PKCS1v15()
                public_key.verify(signature, signed, pad, chosen_hash)  # type: ignore[union-attr, call-arg]
            case PublicKeyKind.ECDSA:
                public_key.verify(signature, signed, ec.ECDSA(chosen_hash))  # type: ignore[union-attr, call-arg]
            case PublicKeyKind.DSA:
                public_key.verify(signature, signed, chosen_hash)  # type: ignore[union-attr, call-arg]
    except InvalidSignature as e:
        raise VerificationError(f"{key_kind.name} verification failure") from e
