"""Tests for DID canonicalization and index address derivation."""

import pytest

from app.core.config import DID_INDEX_PREFIX
from app.omatrust.did import (
    build_did_pkh,
    build_did_web,
    canonicalize_did,
    compute_did_hash,
    compute_index_address,
    did_to_index_address,
    extract_did_identifier,
    extract_did_method,
    get_address_from_did_pkh,
    get_domain_from_did_web,
    is_valid_did,
    normalize_did_pkh,
    normalize_did_web,
    normalize_domain,
    validate_did_index_address,
)
from app.omatrust.exceptions import InvalidDidFormatError, InvalidPkhFormatError
from app.omatrust.hashing import keccak256, to_hex


class TestCanonicalizeDid:
    """Method-specific canonical forms."""

    def test_web_host_lowercased(self):
        assert canonicalize_did("did:web:Example.COM") == "did:web:example.com"

    def test_web_slash_path_preserved(self):
        assert canonicalize_did("did:web:Example.COM/Users/Alice") == "did:web:example.com/Users/Alice"

    def test_web_colon_path_preserved(self):
        assert canonicalize_did("did:web:Example.com:User:Alice") == "did:web:example.com:User:Alice"

    def test_web_encoded_port(self):
        assert canonicalize_did("did:web:LocalHost%3a8443") == "did:web:localhost%3A8443"
        assert canonicalize_did("did:web:Example.COM%3A3000:Path") == "did:web:example.com%3A3000:Path"

    def test_pkh_address_lowercased(self):
        did = "did:pkh:eip155:1:0xABCDEF1234567890ABCDEF1234567890ABCDEF12"
        assert canonicalize_did(did) == "did:pkh:eip155:1:0xabcdef1234567890abcdef1234567890abcdef12"

    def test_pkh_namespace_and_reference_untouched(self):
        assert canonicalize_did("did:pkh:solana:MainNet:ABC") == "did:pkh:solana:MainNet:abc"

    def test_other_methods_passthrough(self):
        assert canonicalize_did("did:key:z6MkhaXgBZDvotDk") == "did:key:z6MkhaXgBZDvotDk"
        assert canonicalize_did("did:unknown:IDENTIFIER") == "did:unknown:IDENTIFIER"

    def test_trims_whitespace(self):
        assert canonicalize_did("  did:web:Example.com ") == "did:web:example.com"

    @pytest.mark.parametrize("did", [
        "did:web:Example.COM",
        "did:web:Example.COM/a/B",
        "did:web:Host%3A8080:Path",
        "did:pkh:eip155:1:0xABC",
        "did:key:zAbC",
    ])
    def test_idempotent(self, did):
        once = canonicalize_did(did)
        assert canonicalize_did(once) == once

    @pytest.mark.parametrize("did", ["not-a-did", "did:", "did:web", "did::example.com", ""])
    def test_invalid_format(self, did):
        with pytest.raises(InvalidDidFormatError, match="Invalid DID format"):
            canonicalize_did(did)

    def test_invalid_pkh(self):
        with pytest.raises(InvalidPkhFormatError, match="Invalid did:pkh format"):
            canonicalize_did("did:pkh:eip155:1")
        with pytest.raises(InvalidPkhFormatError):
            canonicalize_did("did:pkh:eip155:1:0xabc:extra")


class TestNormalizeDidWeb:
    """Bare hosts and did:web inputs."""

    @pytest.mark.parametrize("value,expected", [
        ("example.com", "did:web:example.com"),
        ("EXAMPLE.COM", "did:web:example.com"),
        ("  example.com  ", "did:web:example.com"),
        ("did:web:app.example.com", "did:web:app.example.com"),
        ("example.com:3000", "did:web:example.com:3000"),
        ("localhost", "did:web:localhost"),
        ("192.168.1.1", "did:web:192.168.1.1"),
    ])
    def test_forms(self, value, expected):
        assert normalize_did_web(value) == expected

    def test_rejects_other_method(self):
        with pytest.raises(InvalidDidFormatError, match="non-web DID"):
            normalize_did_web("did:pkh:eip155:1:0xabc")

    def test_pkh_direct(self):
        assert normalize_did_pkh("did:pkh:eip155:1:0xABCDEF") == "did:pkh:eip155:1:0xabcdef"


class TestPredicates:
    """Total functions: sentinel instead of exceptions."""

    @pytest.mark.parametrize("did", [
        "did:web:example.com",
        "did:pkh:eip155:1:0x123",
        "did:key:z6MkhaXgBZDvotDkL5257faiztiGiC2QtKLGpbnnEGta2doK",
        "did:WEB:example.com",
    ])
    def test_valid(self, did):
        assert is_valid_did(did)

    @pytest.mark.parametrize("did", ["not-a-did", "example.com", "", "did:web:", "did:web", "did::example.com", None])
    def test_invalid(self, did):
        assert not is_valid_did(did)

    def test_extract_method(self):
        assert extract_did_method("did:web:example.com") == "web"
        assert extract_did_method("did:WEB:example.com") == "WEB"
        assert extract_did_method("did:123:identifier") == "123"
        assert extract_did_method("did::") is None
        assert extract_did_method("") is None

    def test_extract_identifier(self):
        assert extract_did_identifier("did:pkh:eip155:1:0x123") == "eip155:1:0x123"
        assert extract_did_identifier("did:web:example.com:user:alice") == "example.com:user:alice"
        assert extract_did_identifier("example.com") is None

    def test_normalize_domain(self):
        assert normalize_domain("Example.COM.") == "example.com"
        assert normalize_domain("example.com") == "example.com"


class TestIndexAddress:
    """DID hash and index address derivation."""

    def test_did_hash_is_keccak_of_canonical(self):
        assert compute_did_hash("did:web:Example.COM") == keccak256(b"did:web:example.com")
        assert len(compute_did_hash("did:web:example.com")) == 32

    def test_index_address_layout(self):
        did_hash = compute_did_hash("did:web:example.com")
        expected = keccak256(DID_INDEX_PREFIX.encode() + did_hash)[12:]
        assert compute_index_address(did_hash) == expected
        assert len(expected) == 20

    def test_accepts_hex_digest(self):
        did_hash = compute_did_hash("did:web:example.com")
        assert compute_index_address(to_hex(did_hash)) == compute_index_address(did_hash)

    def test_rejects_wrong_digest_length(self):
        with pytest.raises(ValueError):
            compute_index_address(b"\x00" * 31)

    def test_deterministic_and_distinct(self):
        a1 = compute_index_address(compute_did_hash("did:web:example.com"))
        a2 = compute_index_address(compute_did_hash("did:web:example.com"))
        b = compute_index_address(compute_did_hash("did:web:other.com"))
        assert a1 == a2
        assert a1 != b

    def test_corpus_has_no_collisions(self):
        dids = [f"did:web:app{i}.example.com" for i in range(200)]
        dids += [f"did:pkh:eip155:1:0x{i:040x}" for i in range(200)]
        assert len({did_to_index_address(d) for d in dids}) == len(dids)

    def test_string_form(self):
        address = did_to_index_address("did:web:example.com")
        assert address.startswith("0x")
        assert len(address) == 42
        assert address == address.lower()

    def test_case_variants_share_address(self):
        assert did_to_index_address("did:web:Example.COM") == did_to_index_address("did:web:example.com")


class TestValidateIndexAddress:

    def test_matching(self):
        did = "did:web:example.com"
        assert validate_did_index_address(did, did_to_index_address(did))

    def test_case_insensitive(self):
        did = "did:web:example.com"
        assert validate_did_index_address(did, did_to_index_address(did).upper())

    def test_mismatch(self):
        assert not validate_did_index_address("did:web:example.com", "0x" + "0" * 40)

    def test_invalid_did_returns_false(self):
        assert not validate_did_index_address("not-a-did", "0x" + "0" * 40)
        assert not validate_did_index_address("did:pkh:eip155:1", "0x" + "0" * 40)


class TestHelpers:

    def test_domain_from_did_web(self):
        assert get_domain_from_did_web("did:web:Example.COM") == "example.com"
        assert get_domain_from_did_web("did:web:example.com:user:alice") == "example.com"
        assert get_domain_from_did_web("did:web:example.com%3A8443") == "example.com"
        assert get_domain_from_did_web("did:pkh:eip155:1:0xabc") is None

    def test_address_from_did_pkh(self):
        assert get_address_from_did_pkh("did:pkh:eip155:1:0xABC") == "0xabc"
        assert get_address_from_did_pkh("did:pkh:eip155:1") is None

    def test_builders(self):
        assert build_did_web("Example.COM.") == "did:web:example.com"
        assert build_did_pkh("eip155", "1", "0xABC") == "did:pkh:eip155:1:0xabc"
