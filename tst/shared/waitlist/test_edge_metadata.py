import math

from src.shared.waitlist.edge_metadata import EdgeSnapshot, read_edge_snapshot


def test_missing_context_is_all_none():
    snapshot = read_edge_snapshot(None)
    assert snapshot == EdgeSnapshot()
    assert all(value is None for value in snapshot.to_columns().values())


def test_reads_strings_and_numbers():
    snapshot = read_edge_snapshot({
        "country": "US",
        "region": "California",
        "regionCode": "CA",
        "city": "San Francisco",
        "postalCode": "94107",
        "continent": "NA",
        "timezone": "America/Los_Angeles",
        "colo": "SJC",
        "asn": 13335.7,
        "asOrganization": "Cloudflare",
        "latitude": "37.78",
        "longitude": -122.39,
        "botManagement": {"score": "42"},
        "tlsVersion": "TLSv1.3",
        "httpProtocol": "HTTP/3",
    })

    assert snapshot.region_code == "CA"
    assert snapshot.postal_code == "94107"
    assert snapshot.asn == 13335
    assert snapshot.latitude == 37.78
    assert snapshot.longitude == -122.39
    assert snapshot.bot_score == 42
    assert snapshot.tls_version == "TLSv1.3"


def test_rejects_malformed_values():
    snapshot = read_edge_snapshot({
        "country": "",
        "city": 12,
        "asn": "not-a-number",
        "latitude": math.nan,
        "longitude": "inf",
        "botManagement": "high",
        "colo": None,
    })

    assert snapshot.country is None
    assert snapshot.city is None
    assert snapshot.asn is None
    assert snapshot.latitude is None
    assert snapshot.longitude is None
    assert snapshot.bot_score is None
    assert snapshot.colo is None


def test_booleans_are_not_numbers():
    assert read_edge_snapshot({"asn": True}).asn is None


def test_negative_numbers_truncate_toward_zero():
    assert read_edge_snapshot({"asn": -3.9}).asn == -3


def test_country_falls_back_to_header():
    assert read_edge_snapshot(None, {"cf-ipcountry": "fr"}).country == "FR"
    assert read_edge_snapshot({"country": "DE"}, {"cf-ipcountry": "FR"}).country == "DE"
    assert read_edge_snapshot(None, {"cf-ipcountry": "XX"}).country is None


def test_columns_are_prefixed():
    columns = EdgeSnapshot(country="US", asn=1).to_columns()
    assert columns["cf_country"] == "US"
    assert columns["cf_asn"] == 1
    assert "cf_http_protocol" in columns
