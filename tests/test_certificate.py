"""Tests for certificate parsing and issuer references."""

import pytest

from app.opencerts.certificate import (
    EnsName,
    EthereumAddress,
    certificate_data,
    first_issuer_identifier,
    parse_certificate,
    parse_issuer_ref,
    unsalt,
)
from app.opencerts.exceptions import CertificateParseError
from app.opencerts.api_models import ErrorCode

from conftest import ENS_NAME, ISSUER_ADDRESS, PROOF_0, CertificateBuilder

SALT = "0b7e3f4c-8a4b-4b1e-9d1c-2f8b9c0a1d2e"


class TestParseIssuerRef:
    def test_address(self):
        assert parse_issuer_ref(ISSUER_ADDRESS) == EthereumAddress(ISSUER_ADDRESS)

    def test_ens_name(self):
        assert parse_issuer_ref(ENS_NAME) == EnsName(ENS_NAME)

    def test_short_hex_is_not_an_address(self):
        assert isinstance(parse_issuer_ref("0x1234"), EnsName)

    def test_empty_rejected(self):
        with pytest.raises(CertificateParseError):
            parse_issuer_ref("  ")


class TestUnsalt:
    def test_string(self):
        assert unsalt(f"{SALT}:string:Jane Tan") == "Jane Tan"

    def test_string_containing_colons(self):
        assert unsalt(f"{SALT}:string:a:b:c") == "a:b:c"

    def test_number(self):
        assert unsalt(f"{SALT}:number:42") == 42
        assert unsalt(f"{SALT}:number:4.5") == 4.5

    def test_boolean_and_null(self):
        assert unsalt(f"{SALT}:boolean:true") is True
        assert unsalt(f"{SALT}:boolean:false") is False
        assert unsalt(f"{SALT}:null:null") is None

    def test_nested_and_unsalted_values(self):
        data = {"a": [f"{SALT}:string:x", "plain"], "b": {"c": 3}}
        assert unsalt(data) == {"a": ["x", "plain"], "b": {"c": 3}}


class TestParseCertificate:
    def test_normalizes_hashes(self):
        cert = CertificateBuilder().add_issuer(ISSUER_ADDRESS).with_proof([PROOF_0]).finish()
        assert cert.target_hash.startswith("0x")
        assert cert.proof == (PROOF_0,)
        assert cert.merkle_root.startswith("0x")

    def test_issuer_refs_in_order(self):
        cert = CertificateBuilder().add_issuer(ENS_NAME).add_issuer(ISSUER_ADDRESS).finish()
        assert cert.issuer_refs == [EnsName(ENS_NAME), EthereumAddress(ISSUER_ADDRESS)]

    def test_salted_issuer_store(self):
        document = CertificateBuilder().document()
        document["data"]["issuers"] = [{"certificateStore": f"{SALT}:string:{ISSUER_ADDRESS}"}]
        cert = parse_certificate(document)
        assert cert.issuer_refs == [EthereumAddress(ISSUER_ADDRESS)]
        assert first_issuer_identifier(certificate_data(cert)) == ISSUER_ADDRESS

    def test_document_store_field(self):
        document = CertificateBuilder().document()
        document["data"]["issuers"] = [{"documentStore": ISSUER_ADDRESS}]
        assert parse_certificate(document).issuer_refs == [EthereumAddress(ISSUER_ADDRESS)]

    def test_privacy_obfuscated_data(self):
        document = CertificateBuilder().document()
        document["privacy"] = {"obfuscatedData": [PROOF_0[2:]]}
        assert parse_certificate(document).obfuscated_data == (PROOF_0,)

    def test_missing_data(self):
        with pytest.raises(CertificateParseError) as exc:
            parse_certificate({"signature": {}})
        assert exc.value.code == ErrorCode.CERTIFICATE_INVALID

    def test_missing_signature(self):
        with pytest.raises(CertificateParseError):
            parse_certificate({"data": {}})

    def test_bad_target_hash(self):
        document = CertificateBuilder().document()
        document["signature"]["targetHash"] = "not-a-hash"
        with pytest.raises(CertificateParseError, match="malformed"):
            parse_certificate(document)

    def test_non_object(self):
        with pytest.raises(CertificateParseError):
            parse_certificate(["not", "a", "certificate"])

    def test_unsupported_signature_type(self):
        document = CertificateBuilder().document()
        document["signature"]["type"] = "EcdsaSignature"
        with pytest.raises(CertificateParseError, match="Unsupported signature type"):
            parse_certificate(document)


class TestFirstIssuerIdentifier:
    def test_none_without_issuers(self):
        assert first_issuer_identifier({}) is None
