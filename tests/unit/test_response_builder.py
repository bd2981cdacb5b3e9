"""
Unit tests for the OCSP response builder and the private-key signer.

Every built response is parsed back with OcspResponseParser, so these are
round trips through the whole codec; DER details the parser does not expose
are checked by loading the output with the asn1_schema classes.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from asn1crypto import core

from ocsp_codec.adapters import asn1_schema, certificates
from ocsp_codec.adapters.response_builder import OcspResponseBuilder, PrivateKeySigner
from ocsp_codec.adapters.response_parser import OcspResponseParser
from ocsp_codec.config import OcspSettings
from ocsp_codec.domain.models import (
    CertStatus,
    Extension,
    HashKind,
    ResponderName,
    Response,
    ResponseTemplate,
    RevocationReason,
    SignatureAlgorithm,
    SignerParameters,
)
from ocsp_codec.domain.ports import ResponseBuilder, ResponseSigner
from ocsp_codec.railway import ErrorCode, ResultAssertions
from tests.conftest import LEAF_SERIAL, KeyPair

THIS_UPDATE = datetime(2026, 5, 4, 10, 20, 30, 123456, tzinfo=UTC)
NEXT_UPDATE = THIS_UPDATE + timedelta(days=7)
REVOKED_AT = datetime(2026, 4, 1, 8, 0, 0, tzinfo=UTC)


# ─────────────────────── Fixtures ───────────────────────


@pytest.fixture()
def builder(settings: OcspSettings) -> OcspResponseBuilder:
    """Create an OcspResponseBuilder with default settings."""
    return OcspResponseBuilder(settings)


@pytest.fixture()
def parser() -> OcspResponseParser:
    return OcspResponseParser()


def _template(**overrides: object) -> ResponseTemplate:
    fields: dict[str, object] = {
        "serial_number": LEAF_SERIAL,
        "status": CertStatus.GOOD,
        "this_update": THIS_UPDATE,
    }
    fields.update(overrides)
    return ResponseTemplate(**fields)  # type: ignore[arg-type]


def _single_response(der: bytes) -> asn1_schema.SingleResponse:
    envelope = asn1_schema.OCSPResponse.load(der)
    basic = asn1_schema.BasicOCSPResponse.load(envelope["response_bytes"]["response"].native)
    return basic["tbs_response_data"]["responses"][0]


# ─────────────────────── Ports ───────────────────────


class TestPorts:
    def test_builder_satisfies_port(self, builder: OcspResponseBuilder) -> None:
        assert isinstance(builder, ResponseBuilder)

    def test_signer_satisfies_port(self, rsa_responder: KeyPair) -> None:
        assert isinstance(PrivateKeySigner(rsa_responder.key), ResponseSigner)


# ─────────────────────── Round Trips ───────────────────────


class TestGoodResponse:
    """
    GIVEN a GOOD template and an RSA responder embedding its certificate
    WHEN built and parsed back against the CA
    THEN every field survives.
    """

    @pytest.fixture()
    def response_der(
        self, builder: OcspResponseBuilder, ca: KeyPair, rsa_responder: KeyPair
    ) -> bytes:
        template = _template(certificate=rsa_responder.cert)
        return ResultAssertions.assert_success(
            builder.create(ca.cert, rsa_responder.cert, template, PrivateKeySigner(rsa_responder.key))
        )

    def test_parses_and_verifies(
        self, parser: OcspResponseParser, response_der: bytes, ca: KeyPair, leaf: KeyPair
    ) -> None:
        response = ResultAssertions.assert_success(
            parser.parse_for_cert(response_der, leaf.cert, ca.cert)
        )
        assert response.status is CertStatus.GOOD
        assert response.serial_number == LEAF_SERIAL
        assert response.signature_algorithm is SignatureAlgorithm.SHA256_WITH_RSA

    def test_this_update_truncated_to_seconds(
        self, parser: OcspResponseParser, response_der: bytes
    ) -> None:
        response = ResultAssertions.assert_success(parser.parse(response_der))
        assert response.this_update == THIS_UPDATE.replace(microsecond=0)
        assert response.next_update is None

    def test_produced_at_truncated_to_minute(
        self, parser: OcspResponseParser, response_der: bytes
    ) -> None:
        response = ResultAssertions.assert_success(parser.parse(response_der))
        assert response.produced_at.second == 0
        assert response.produced_at.microsecond == 0
        assert abs(datetime.now(UTC) - response.produced_at) < timedelta(minutes=2)

    def test_responder_is_identified_by_name(
        self, parser: OcspResponseParser, response_der: bytes, rsa_responder: KeyPair
    ) -> None:
        response = ResultAssertions.assert_success(parser.parse(response_der))
        assert response.responder_id == ResponderName(certificates.raw_subject(rsa_responder.cert))

    def test_cert_id_uses_sha1_issuer_hashes(self, response_der: bytes, ca: KeyPair) -> None:
        cert_id = _single_response(response_der)["cert_id"]
        name_hash, key_hash = certificates.issuer_hashes(ca.cert, HashKind.SHA1)
        assert cert_id["hash_algorithm"]["algorithm"].dotted == "1.3.14.3.2.26"
        assert cert_id["hash_algorithm"]["parameters"].dump() == b"\x05\x00"
        assert cert_id["issuer_name_hash"].native == name_hash
        assert cert_id["issuer_key_hash"].native == key_hash

    def test_embedded_certificate(
        self, parser: OcspResponseParser, response_der: bytes, rsa_responder: KeyPair
    ) -> None:
        response = ResultAssertions.assert_success(parser.parse(response_der))
        assert response.certificate == rsa_responder.cert

    def test_version_is_omitted(self, response_der: bytes) -> None:
        """
        GIVEN a built response
        WHEN ResponseData is inspected
        THEN it starts with the ResponderID: version v1 is the default and not encoded.
        """
        envelope = asn1_schema.OCSPResponse.load(response_der)
        basic = asn1_schema.BasicOCSPResponse.load(envelope["response_bytes"]["response"].native)
        tbs_contents = basic["tbs_response_data"].contents
        assert tbs_contents[0] == 0xA1


class TestStatuses:
    """
    GIVEN templates for each certificate status
    WHEN built and parsed back
    THEN status, revocation time and reason round-trip.
    """

    def _round_trip(
        self,
        builder: OcspResponseBuilder,
        parser: OcspResponseParser,
        ca: KeyPair,
        responder: KeyPair,
        template: ResponseTemplate,
    ) -> tuple[bytes, Response]:
        der = ResultAssertions.assert_success(
            builder.create(ca.cert, responder.cert, template, PrivateKeySigner(responder.key))
        )
        return der, ResultAssertions.assert_success(parser.parse(der))

    def test_unknown(
        self, builder: OcspResponseBuilder, parser: OcspResponseParser, ca: KeyPair, rsa_responder: KeyPair
    ) -> None:
        _, response = self._round_trip(
            builder, parser, ca, rsa_responder, _template(status=CertStatus.UNKNOWN)
        )
        assert response.status is CertStatus.UNKNOWN

    def test_revoked_with_reason(
        self, builder: OcspResponseBuilder, parser: OcspResponseParser, ca: KeyPair, rsa_responder: KeyPair
    ) -> None:
        template = _template(
            status=CertStatus.REVOKED,
            revoked_at=REVOKED_AT,
            revocation_reason=RevocationReason.KEY_COMPROMISE,
            next_update=NEXT_UPDATE,
        )
        _, response = self._round_trip(builder, parser, ca, rsa_responder, template)
        assert response.status is CertStatus.REVOKED
        assert response.revoked_at == REVOKED_AT
        assert response.revocation_reason == RevocationReason.KEY_COMPROMISE
        assert response.next_update == NEXT_UPDATE.replace(microsecond=0)

    def test_unspecified_reason_is_not_encoded(
        self, builder: OcspResponseBuilder, parser: OcspResponseParser, ca: KeyPair, rsa_responder: KeyPair
    ) -> None:
        """
        GIVEN a revoked template with reason 0 (unspecified)
        WHEN built
        THEN revocationReason is left out and parses back as 0.
        """
        template = _template(status=CertStatus.REVOKED, revoked_at=REVOKED_AT)
        der, response = self._round_trip(builder, parser, ca, rsa_responder, template)
        revoked_info = _single_response(der)["cert_status"].chosen
        assert isinstance(revoked_info["revocation_reason"], core.Void)
        assert response.revocation_reason == RevocationReason.UNSPECIFIED

    def test_naive_times_are_utc(
        self, builder: OcspResponseBuilder, parser: OcspResponseParser, ca: KeyPair, rsa_responder: KeyPair
    ) -> None:
        naive = datetime(2026, 1, 1, 0, 0, 0)
        _, response = self._round_trip(
            builder, parser, ca, rsa_responder, _template(this_update=naive)
        )
        assert response.this_update == naive.replace(tzinfo=UTC)

    def test_revoked_without_time_fails(
        self, builder: OcspResponseBuilder, ca: KeyPair, rsa_responder: KeyPair
    ) -> None:
        result = builder.create(
            ca.cert,
            rsa_responder.cert,
            _template(status=CertStatus.REVOKED),
            PrivateKeySigner(rsa_responder.key),
        )
        ResultAssertions.assert_failure(result, ErrorCode.VALIDATION_ERROR)
        ResultAssertions.assert_failure_message_contains(result, "requires revoked_at")

    @pytest.mark.parametrize("reason", [7, 11, -1])
    def test_invalid_revocation_reason_fails(
        self, builder: OcspResponseBuilder, ca: KeyPair, rsa_responder: KeyPair, reason: int
    ) -> None:
        """
        GIVEN a revoked template whose reason is not a CRLReason code
        WHEN built
        THEN the template is refused as invalid input, not as malformed bytes.
        """
        template = _template(status=CertStatus.REVOKED, revoked_at=REVOKED_AT, revocation_reason=reason)
        result = builder.create(ca.cert, rsa_responder.cert, template, PrivateKeySigner(rsa_responder.key))
        ResultAssertions.assert_failure(result, ErrorCode.VALIDATION_ERROR)
        ResultAssertions.assert_failure_message_contains(result, f"invalid revocation reason: {reason}")


# ─────────────────────── Extensions ───────────────────────


class TestExtensions:
    """
    GIVEN extra single and response extensions
    WHEN built and parsed back
    THEN they appear in singleExtensions and responseExtensions respectively.
    """

    def test_both_extension_lists_round_trip(
        self, builder: OcspResponseBuilder, parser: OcspResponseParser, ca: KeyPair, rsa_responder: KeyPair
    ) -> None:
        single_ext = Extension(oid="1.3.6.1.5.5.7.48.1.6", value=b"\x18\x0f20260101000000Z")
        nonce = Extension(oid="1.3.6.1.5.5.7.48.1.2", value=b"\x04\x04abcd")
        template = _template(extra_extensions=(single_ext,), response_extra_extensions=(nonce,))
        der = ResultAssertions.assert_success(
            builder.create(ca.cert, rsa_responder.cert, template, PrivateKeySigner(rsa_responder.key))
        )
        response = ResultAssertions.assert_success(parser.parse(der))
        assert response.extensions == (single_ext,)
        assert response.response_extensions == (nonce,)

    def test_critical_extra_extension_is_rejected_on_parse(
        self, builder: OcspResponseBuilder, parser: OcspResponseParser, ca: KeyPair, rsa_responder: KeyPair
    ) -> None:
        ext = Extension(oid="1.2.3.4", value=b"\x05\x00", critical=True)
        der = ResultAssertions.assert_success(
            builder.create(
                ca.cert,
                rsa_responder.cert,
                _template(extra_extensions=(ext,)),
                PrivateKeySigner(rsa_responder.key),
            )
        )
        ResultAssertions.assert_failure_message_contains(
            parser.parse(der), "unsupported critical extension"
        )


# ─────────────────────── Signing ───────────────────────


class TestSigning:
    """
    GIVEN different responder keys and requested algorithms
    WHEN a response is built
    THEN the signature algorithm follows the key or the request, and verifies.
    """

    @pytest.mark.parametrize(
        "algorithm",
        [
            SignatureAlgorithm.SHA256_WITH_RSA_PSS,
            SignatureAlgorithm.SHA384_WITH_RSA_PSS,
            SignatureAlgorithm.SHA512_WITH_RSA_PSS,
            SignatureAlgorithm.SHA1_WITH_RSA,
            SignatureAlgorithm.SHA512_WITH_RSA,
        ],
    )
    def test_requested_rsa_algorithms(
        self,
        builder: OcspResponseBuilder,
        parser: OcspResponseParser,
        ca: KeyPair,
        rsa_responder: KeyPair,
        algorithm: SignatureAlgorithm,
    ) -> None:
        template = _template(signature_algorithm=algorithm, certificate=rsa_responder.cert)
        der = ResultAssertions.assert_success(
            builder.create(ca.cert, rsa_responder.cert, template, PrivateKeySigner(rsa_responder.key))
        )
        response = ResultAssertions.assert_success(parser.parse(der, ca.cert))
        assert response.signature_algorithm is algorithm

    def test_ecdsa_responder(
        self, builder: OcspResponseBuilder, parser: OcspResponseParser, ca: KeyPair, ec_responder: KeyPair
    ) -> None:
        template = _template(certificate=ec_responder.cert)
        der = ResultAssertions.assert_success(
            builder.create(ca.cert, ec_responder.cert, template, PrivateKeySigner(ec_responder.key))
        )
        response = ResultAssertions.assert_success(parser.parse(der, ca.cert))
        assert response.signature_algorithm is SignatureAlgorithm.ECDSA_WITH_SHA256

    def test_requested_algorithm_must_fit_key(
        self, builder: OcspResponseBuilder, ca: KeyPair, ec_responder: KeyPair
    ) -> None:
        result = builder.create(
            ca.cert,
            ec_responder.cert,
            _template(signature_algorithm=SignatureAlgorithm.SHA256_WITH_RSA),
            PrivateKeySigner(ec_responder.key),
        )
        ResultAssertions.assert_failure(result, ErrorCode.VALIDATION_ERROR)
        ResultAssertions.assert_failure_message_contains(
            result, "requested SignatureAlgorithm does not match private key type"
        )

    def test_pss_signer_salt(self) -> None:
        """
        GIVEN PSS signer parameters
        WHEN the salt length is read
        THEN it equals the digest size.
        """
        assert SignerParameters(HashKind.SHA384, pss=True).salt_length == 48
        assert SignerParameters(HashKind.SHA384).salt_length is None


# ─────────────────────── Issuer Hash ───────────────────────


class TestIssuerHash:
    """
    GIVEN templates or settings choosing the CertID hash
    WHEN a response is built
    THEN the chosen hash is used, and unusable hashes are refused.
    """

    def test_template_hash(
        self, builder: OcspResponseBuilder, parser: OcspResponseParser, ca: KeyPair, rsa_responder: KeyPair
    ) -> None:
        der = ResultAssertions.assert_success(
            builder.create(
                ca.cert,
                rsa_responder.cert,
                _template(issuer_hash=HashKind.SHA384),
                PrivateKeySigner(rsa_responder.key),
            )
        )
        assert ResultAssertions.assert_success(parser.parse(der)).issuer_hash is HashKind.SHA384

    def test_settings_hash(self, parser: OcspResponseParser, ca: KeyPair, rsa_responder: KeyPair) -> None:
        builder = OcspResponseBuilder(OcspSettings(_env_file=None, issuer_hash=HashKind.SHA256))
        der = ResultAssertions.assert_success(
            builder.create(ca.cert, rsa_responder.cert, _template(), PrivateKeySigner(rsa_responder.key))
        )
        assert ResultAssertions.assert_success(parser.parse(der)).issuer_hash is HashKind.SHA256

    def test_md5_refused(self, builder: OcspResponseBuilder, ca: KeyPair, rsa_responder: KeyPair) -> None:
        result = builder.create(
            ca.cert,
            rsa_responder.cert,
            _template(issuer_hash=HashKind.MD5),
            PrivateKeySigner(rsa_responder.key),
        )
        ResultAssertions.assert_failure(result, ErrorCode.VALIDATION_ERROR)
        ResultAssertions.assert_failure_message_contains(result, "unsupported issuer hash algorithm")
