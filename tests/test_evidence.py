"""Tests for DNS TXT and did.json controller evidence."""

from unittest.mock import AsyncMock, patch

import dns.exception
import dns.resolver
import httpx
import pytest

from app.omatrust.api_models import ErrorCode
from app.omatrust.evidence import (
    EvidenceMethod,
    EvidenceResult,
    addresses_match,
    extract_address,
    find_controller_in_did_document,
    find_controller_in_dns_txt,
    parse_evidence_string,
    verify_controller_evidence,
    verify_did_web_control,
)

ADDR = "0xabc0000000000000000000000000000000000def"
ADDR_UPPER = "0xABC0000000000000000000000000000000000DEF"
OTHER = "0x1110000000000000000000000000000000000222"

EVIDENCE_MODULE = "app.omatrust.evidence"


class TestParseEvidenceString:
    """v=1 evidence string parsing."""

    def test_semicolon_separated(self):
        record = parse_evidence_string(f"v=1;controller=did:pkh:eip155:1:{ADDR}")
        assert record.version == "1"
        assert record.controllers == [f"did:pkh:eip155:1:{ADDR}"]

    def test_whitespace_and_order_independent(self):
        record = parse_evidence_string(f"controller=did:pkh:eip155:1:{ADDR}  v=1 ; other=x")
        assert record.controllers == [f"did:pkh:eip155:1:{ADDR}"]

    def test_missing_version_is_not_a_record(self):
        assert parse_evidence_string(f"controller=did:pkh:eip155:1:{ADDR}") is None
        assert parse_evidence_string("v=2;controller=did:web:example.com") is None

    def test_bare_address_controllers_dropped(self):
        record = parse_evidence_string(
            f"v=1;controller={ADDR};controller=eip155:1:{ADDR};controller=did:web:example.com"
        )
        assert record.controllers == ["did:web:example.com"]

    def test_multiple_controllers(self):
        record = parse_evidence_string(
            f"v=1 controller=did:pkh:eip155:1:{ADDR} controller=did:pkh:eip155:10:{OTHER}"
        )
        assert len(record.controllers) == 2


class TestAddressMatching:
    """Address-level comparison ignoring chain id and case."""

    def test_extract_from_pkh(self):
        assert extract_address(f"did:pkh:eip155:1:{ADDR_UPPER}") == ADDR

    def test_extract_raw(self):
        assert extract_address(ADDR_UPPER) == ADDR

    def test_no_address(self):
        assert extract_address("did:key:z6Mk") is None
        assert extract_address("did:web:example.com") is None
        assert extract_address("0x1234") is None

    def test_chain_id_ignored(self):
        assert addresses_match(f"did:pkh:eip155:1:{ADDR_UPPER}", f"did:pkh:eip155:137:{ADDR}")

    def test_raw_vs_did(self):
        assert addresses_match(ADDR, f"did:pkh:eip155:66238:{ADDR}")

    def test_mismatch(self):
        assert not addresses_match(ADDR, OTHER)
        assert not addresses_match("did:key:z6Mk", "did:key:z6Mk")


class TestDnsTxt:
    """find_controller_in_dns_txt with a stub resolver."""

    @pytest.mark.asyncio
    async def test_match_across_chains(self, dns_stub):
        resolver = dns_stub.resolver([dns_stub.txt(f"v=1;controller=did:pkh:eip155:1:{ADDR_UPPER}")])

        result = await find_controller_in_dns_txt(
            "Example.com", f"did:pkh:eip155:137:{ADDR}", resolver=resolver
        )

        assert result.found
        assert result.matched_controller == f"did:pkh:eip155:1:{ADDR_UPPER}"
        resolver.resolve.assert_awaited_once_with("_omatrust.example.com", "TXT")

    @pytest.mark.asyncio
    async def test_split_txt_strings_are_joined(self, dns_stub):
        resolver = dns_stub.resolver([dns_stub.txt("v=1;controller=did:pkh:", f"eip155:1:{ADDR}")])

        result = await find_controller_in_dns_txt("example.com", ADDR, resolver=resolver)

        assert result.found

    @pytest.mark.asyncio
    async def test_skips_non_evidence_records(self, dns_stub):
        resolver = dns_stub.resolver([
            dns_stub.txt("google-site-verification=abc"),
            dns_stub.txt(f"v=1;controller=did:pkh:eip155:1:{ADDR}"),
        ])

        result = await find_controller_in_dns_txt("example.com", ADDR, resolver=resolver)

        assert result.found

    @pytest.mark.asyncio
    async def test_no_controller_entries(self, dns_stub):
        resolver = dns_stub.resolver([dns_stub.txt(f"v=1;controller={ADDR}")])

        result = await find_controller_in_dns_txt("example.com", ADDR, resolver=resolver)

        assert not result.found
        assert "no controller entries" in result.details

    @pytest.mark.asyncio
    async def test_controllers_do_not_match(self, dns_stub):
        resolver = dns_stub.resolver([dns_stub.txt(f"v=1;controller=did:pkh:eip155:1:{OTHER}")])

        result = await find_controller_in_dns_txt("example.com", ADDR, resolver=resolver)

        assert not result.found
        assert "do not match" in result.details
        assert OTHER in result.details

    @pytest.mark.asyncio
    async def test_no_answer(self, dns_stub):
        resolver = dns_stub.resolver(side_effect=dns.resolver.NoAnswer())

        result = await find_controller_in_dns_txt("example.com", ADDR, resolver=resolver)

        assert not result.found
        assert "No TXT records" in result.details

    @pytest.mark.asyncio
    async def test_nxdomain(self, dns_stub):
        resolver = dns_stub.resolver(side_effect=dns.resolver.NXDOMAIN())

        result = await find_controller_in_dns_txt("example.com", ADDR, resolver=resolver)

        assert not result.found
        assert "DNS lookup failed for _omatrust.example.com" in result.details

    @pytest.mark.asyncio
    async def test_timeout(self, dns_stub):
        resolver = dns_stub.resolver(side_effect=dns.exception.Timeout())

        result = await find_controller_in_dns_txt("example.com", ADDR, resolver=resolver)

        assert not result.found
        assert "timeout" in result.details


def _did_doc_handler(document=None, status=200, body=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if body is not None:
            return httpx.Response(status, content=body, headers={"content-type": "application/json"})
        return httpx.Response(status, json=document)
    return handler


class TestDidDocument:
    """find_controller_in_did_document over a mocked transport."""

    @pytest.mark.asyncio
    async def test_blockchain_account_id_match(self, http_mock):
        doc = {"verificationMethod": [{"blockchainAccountId": f"eip155:1:{ADDR_UPPER}"}]}

        with http_mock(EVIDENCE_MODULE, _did_doc_handler(doc)) as seen:
            result = await find_controller_in_did_document("Example.com", f"did:pkh:eip155:10:{ADDR}")

        assert result.found
        assert result.matched_controller == f"did:pkh:eip155:1:{ADDR_UPPER}"
        assert str(seen[0].url) == "https://example.com/.well-known/did.json"
        assert seen[0].headers["accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_public_key_hex_without_prefix(self, http_mock):
        doc = {"verificationMethod": [{"publicKeyHex": ADDR[2:]}]}

        with http_mock(EVIDENCE_MODULE, _did_doc_handler(doc)):
            result = await find_controller_in_did_document("example.com", ADDR)

        assert result.found
        assert result.matched_controller == ADDR

    @pytest.mark.asyncio
    async def test_public_key_hex_with_prefix(self, http_mock):
        doc = {"verificationMethod": [{"publicKeyHex": ADDR}]}

        with http_mock(EVIDENCE_MODULE, _did_doc_handler(doc)):
            result = await find_controller_in_did_document("example.com", ADDR)

        assert result.found

    @pytest.mark.asyncio
    async def test_no_match(self, http_mock):
        doc = {"verificationMethod": [
            {"blockchainAccountId": f"eip155:1:{OTHER}"},
            {"blockchainAccountId": "not-caip10"},
        ]}

        with http_mock(EVIDENCE_MODULE, _did_doc_handler(doc)):
            result = await find_controller_in_did_document("example.com", ADDR)

        assert not result.found
        assert OTHER in result.details

    @pytest.mark.asyncio
    async def test_no_verification_methods(self, http_mock):
        with http_mock(EVIDENCE_MODULE, _did_doc_handler({"id": "did:web:example.com"})):
            result = await find_controller_in_did_document("example.com", ADDR)

        assert not result.found
        assert "no verificationMethod" in result.details

    @pytest.mark.asyncio
    async def test_http_error(self, http_mock):
        with http_mock(EVIDENCE_MODULE, _did_doc_handler({}, status=404)):
            result = await find_controller_in_did_document("example.com", ADDR)

        assert not result.found
        assert "404" in result.details

    @pytest.mark.asyncio
    async def test_invalid_json(self, http_mock):
        with http_mock(EVIDENCE_MODULE, _did_doc_handler(body=b"{not json")):
            result = await find_controller_in_did_document("example.com", ADDR)

        assert not result.found
        assert "not valid JSON" in result.details

    @pytest.mark.asyncio
    async def test_non_object_document(self, http_mock):
        with http_mock(EVIDENCE_MODULE, _did_doc_handler([1, 2, 3])):
            result = await find_controller_in_did_document("example.com", ADDR)

        assert not result.found
        assert "not a JSON object" in result.details

    @pytest.mark.asyncio
    async def test_network_error(self, http_mock):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with http_mock(EVIDENCE_MODULE, handler):
            result = await find_controller_in_did_document("example.com", ADDR)

        assert not result.found
        assert "Failed to fetch DID document" in result.details

    @pytest.mark.asyncio
    async def test_timeout(self, http_mock):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with http_mock(EVIDENCE_MODULE, handler):
            result = await find_controller_in_did_document("example.com", ADDR)

        assert not result.found
        assert "Timeout" in result.details


class TestSubjectVerification:
    """verify_controller_evidence and the DNS -> did.json fallback."""

    @pytest.mark.asyncio
    async def test_unsupported_method(self):
        result = await verify_controller_evidence("did:web:example.com", ADDR, "email")

        assert not result.found
        assert "Unsupported evidence method" in result.details
        assert result.error_code == ErrorCode.UNSUPPORTED_EVIDENCE_METHOD

    @pytest.mark.asyncio
    async def test_requires_did_web_subject(self):
        result = await verify_controller_evidence(f"did:pkh:eip155:1:{ADDR}", ADDR, "dns-txt")

        assert not result.found
        assert "did:web" in result.details
        assert result.error_code == ErrorCode.MALFORMED_INPUT

    @pytest.mark.asyncio
    async def test_dns_method_uses_subject_domain(self):
        found = EvidenceResult(found=True, matched_controller=f"did:pkh:eip155:1:{ADDR}")
        with patch(f"{EVIDENCE_MODULE}.find_controller_in_dns_txt", AsyncMock(return_value=found)) as m:
            result = await verify_controller_evidence("did:web:Example.COM:path", ADDR, "dns-txt")

        m.assert_awaited_once_with("example.com", ADDR)
        assert result.found
        assert result.method is EvidenceMethod.DNS_TXT

    @pytest.mark.asyncio
    async def test_fallback_to_did_json(self):
        missing = EvidenceResult(found=False, details="No TXT records found")
        found = EvidenceResult(found=True, matched_controller=ADDR)
        with patch(f"{EVIDENCE_MODULE}.find_controller_in_dns_txt", AsyncMock(return_value=missing)), \
             patch(f"{EVIDENCE_MODULE}.find_controller_in_did_document", AsyncMock(return_value=found)):
            result = await verify_did_web_control("did:web:example.com", ADDR)

        assert result.found
        assert result.method is EvidenceMethod.DID_JSON

    @pytest.mark.asyncio
    async def test_dns_match_skips_did_json(self):
        found = EvidenceResult(found=True, matched_controller=ADDR)
        doc_lookup = AsyncMock()
        with patch(f"{EVIDENCE_MODULE}.find_controller_in_dns_txt", AsyncMock(return_value=found)), \
             patch(f"{EVIDENCE_MODULE}.find_controller_in_did_document", doc_lookup):
            result = await verify_did_web_control("did:web:example.com", ADDR)

        assert result.method is EvidenceMethod.DNS_TXT
        doc_lookup.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_both_fail_combines_details(self):
        with patch(f"{EVIDENCE_MODULE}.find_controller_in_dns_txt",
                   AsyncMock(return_value=EvidenceResult(found=False, details="dns says no"))), \
             patch(f"{EVIDENCE_MODULE}.find_controller_in_did_document",
                   AsyncMock(return_value=EvidenceResult(found=False, details="doc says no"))):
            result = await verify_did_web_control("did:web:example.com", ADDR)

        assert not result.found
        assert "dns says no" in result.details
        assert "doc says no" in result.details
        assert result.error_code == ErrorCode.EVIDENCE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_single_method_miss_is_evidence_not_found(self):
        missing = EvidenceResult(found=False, details="No TXT records found")
        with patch(f"{EVIDENCE_MODULE}.find_controller_in_dns_txt", AsyncMock(return_value=missing)):
            result = await verify_controller_evidence("did:web:example.com", ADDR, "dns-txt")

        assert result.error_code == ErrorCode.EVIDENCE_NOT_FOUND
        assert result.method is EvidenceMethod.DNS_TXT
