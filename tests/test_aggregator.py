import asyncio

import pytest

from conftest import FakeTransport, answer, doh_response, json_response
from netScope.lookup.aggregator import (
    DNSAggregator,
    DOH_JSON_MEDIA_TYPE,
    applicable_query_name,
)
from netScope.lookup.classifier import TargetKind
from netScope.lookup.models import DEFAULT_RECORD_TYPES, RecordType
from netScope.lookup.transport import HTTPResponse, TransportError

ENDPOINT = "https://doh.test/dns-query"
DOMAIN_TYPES = ["A", "AAAA", "MX", "TXT", "NS", "CNAME", "SOA"]


def run(coro):
    return asyncio.run(coro)


def test_applicability_rules():
    assert applicable_query_name(RecordType.PTR, "example.com", TargetKind.DOMAIN) is None
    assert applicable_query_name(RecordType.A, "example.com", TargetKind.DOMAIN) == "example.com"
    assert applicable_query_name(RecordType.PTR, "8.8.4.4", TargetKind.IPV4) == "4.4.8.8.in-addr.arpa"
    for rtype in DOMAIN_TYPES:
        assert applicable_query_name(RecordType(rtype), "8.8.4.4", TargetKind.IPV4) is None
        assert applicable_query_name(RecordType(rtype), "::1", TargetKind.IPV6) is None


def test_domain_ptr_is_empty_without_network_call(fake_transport):
    aggregator = DNSAggregator(fake_transport, endpoint=ENDPOINT)
    result = run(aggregator.lookup("example.com", ["PTR"]))
    assert result == {"PTR": []}
    assert fake_transport.requests == []


@pytest.mark.parametrize("target", ["1.1.1.1", "2606:4700:4700::1111"])
def test_ip_targets_skip_forward_types_without_network_call(fake_transport, target):
    aggregator = DNSAggregator(fake_transport, endpoint=ENDPOINT)
    result = run(aggregator.lookup(target, DOMAIN_TYPES))
    assert result == {t: [] for t in DOMAIN_TYPES}
    assert fake_transport.requests == []


def test_failed_type_and_inapplicable_type_are_both_present():
    transport = FakeTransport(lambda request: HTTPResponse(status=500, body=b"boom"))
    aggregator = DNSAggregator(transport, endpoint=ENDPOINT)

    result = run(aggregator.lookup("example.com", ["A", "PTR"]))

    assert result == {"A": [], "PTR": []}
    assert len(transport.requests) == 1
    assert transport.requests[0].params == {"name": "example.com", "type": "A"}


def test_ipv4_end_to_end_with_canned_ptr():
    ptr = answer("1.1.1.1.in-addr.arpa", 12, "one.one.one.one.", ttl=1800)
    transport = FakeTransport(lambda request: doh_response([ptr]))
    aggregator = DNSAggregator(transport, endpoint=ENDPOINT)

    result = run(aggregator.lookup("1.1.1.1", ["A", "AAAA", "PTR"]))

    assert list(result) == ["A", "AAAA", "PTR"]
    assert result["A"] == []
    assert result["AAAA"] == []
    assert len(result["PTR"]) == 1
    record = result["PTR"][0]
    assert record.name == "1.1.1.1.in-addr.arpa"
    assert record.type == 12
    assert record.TTL == 1800
    assert record.data == "one.one.one.one."

    (request,) = transport.requests
    assert request.url == ENDPOINT
    assert request.method == "GET"
    assert request.params == {"name": "1.1.1.1.in-addr.arpa", "type": "PTR"}
    assert request.headers["Accept"] == DOH_JSON_MEDIA_TYPE


def test_ipv6_ptr_uses_nibble_name(fake_transport):
    aggregator = DNSAggregator(fake_transport, endpoint=ENDPOINT)
    run(aggregator.lookup("2001:db8::1", ["PTR"]))
    (request,) = fake_transport.requests
    assert request.params["name"] == "1." + "0." * 23 + "8.b.d.0.1.0.0.2.ip6.arpa"


def test_every_requested_type_is_present_in_request_order():
    def handler(request):
        if request.params["type"] == "MX":
            return doh_response([answer("example.com", 15, "10 mail.example.com.")])
        return doh_response()

    aggregator = DNSAggregator(FakeTransport(handler), endpoint=ENDPOINT)
    result = run(aggregator.lookup("example.com"))

    assert list(result) == [t.value for t in DEFAULT_RECORD_TYPES]
    assert result["MX"][0].data == "10 mail.example.com."
    assert all(result[t] == [] for t in result if t != "MX")


def test_one_failing_type_does_not_affect_others():
    def handler(request):
        rtype = request.params["type"]
        if rtype == "A":
            return TransportError("connection reset")
        if rtype == "TXT":
            return HTTPResponse(status=200, body=b"{not json")
        if rtype == "NS":
            return RuntimeError("unexpected")
        if rtype == "SOA":
            return json_response(["not", "an", "object"])
        return doh_response([answer("example.com", 28, "2001:db8::1")])

    aggregator = DNSAggregator(FakeTransport(handler), endpoint=ENDPOINT)
    result = run(aggregator.lookup("example.com", ["A", "AAAA", "TXT", "NS", "SOA"]))

    assert result["A"] == []
    assert result["TXT"] == []
    assert result["NS"] == []
    assert result["SOA"] == []
    assert [a.data for a in result["AAAA"]] == ["2001:db8::1"]


def test_missing_answer_section_is_empty():
    transport = FakeTransport(lambda request: json_response({"Status": 3}))
    aggregator = DNSAggregator(transport, endpoint=ENDPOINT)
    assert run(aggregator.lookup("nxdomain.example", ["A"])) == {"A": []}


def test_extra_answer_fields_are_ignored():
    record = dict(answer("example.com", 1, "93.184.216.34"), extra="x")
    transport = FakeTransport(lambda request: doh_response([record]))
    result = run(DNSAggregator(transport, endpoint=ENDPOINT).lookup("example.com", ["A"]))
    assert result["A"][0].model_dump() == answer("example.com", 1, "93.184.216.34")


def test_duplicate_types_are_queried_once(fake_transport):
    aggregator = DNSAggregator(fake_transport, endpoint=ENDPOINT)
    result = run(aggregator.lookup("example.com", ["a", "A", RecordType.A]))
    assert result == {"A": []}
    assert len(fake_transport.requests) == 1


def test_unknown_record_type_is_rejected(fake_transport):
    with pytest.raises(ValueError):
        run(DNSAggregator(fake_transport).lookup("example.com", ["SPF"]))


def test_lookups_are_issued_concurrently():
    delay = 0.05
    transport = FakeTransport(lambda request: doh_response([]), delay=delay)
    aggregator = DNSAggregator(transport, endpoint=ENDPOINT)

    result = run(aggregator.lookup("example.com", DOMAIN_TYPES))

    assert list(result) == DOMAIN_TYPES
    assert len(transport.requests) == len(DOMAIN_TYPES)
    # every call started before the first one finished
    assert transport.started_at_first_completion == len(DOMAIN_TYPES)
    assert max(transport.start_times) - min(transport.start_times) < delay
