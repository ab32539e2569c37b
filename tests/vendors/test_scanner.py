"""Unit tests for vendor id patterns and the vendor scanner."""

import json

from gtm_inspector.decoding import decode_container
from gtm_inspector.models import RawContainerDocument
from gtm_inspector.parsing import locate_container
from gtm_inspector.vendors import PatternLibrary, VendorSignature, init_default_patterns, patterns, scan_vendors


class TestPatternLibrary:
    """Test PatternLibrary functionality."""

    def setup_method(self):
        """Set up test with fresh pattern library."""
        self.lib = PatternLibrary()

    def test_add_pattern_valid(self):
        """Test adding valid regex pattern."""
        success = self.lib.add_pattern("digits", r"id=(\d+)", VendorSignature("Test", "Number", group=1))

        assert success is True
        assert self.lib.get_pattern("digits") is not None
        assert list(self.lib.iter_matches("digits", "id=12 id=34")) == ["12", "34"]

    def test_add_pattern_invalid(self):
        """Test adding invalid regex pattern."""
        success = self.lib.add_pattern("broken", r"[invalid regex(", VendorSignature("Test", "Broken"))

        assert success is False
        assert self.lib.get_pattern("broken") is None

    def test_group_out_of_range(self):
        """Test a signature group the pattern does not have is rejected."""
        assert self.lib.add_pattern("nogroup", r"\d+", VendorSignature("Test", "Number", group=1)) is False

    def test_default_registration_order(self):
        init_default_patterns(self.lib)

        assert self.lib.names()[:2] == ["ga4_measurement_id", "ua_property_id"]
        assert self.lib.get_signature("meta_pixel_id").vendor == "Meta (Facebook)"

    def test_unknown_pattern_yields_nothing(self):
        assert list(self.lib.iter_matches("missing", "G-ABC1234567")) == []


class TestDefaultPatterns:
    """Test the default vendor id patterns."""

    def test_ga4_boundaries(self):
        text = 'a="G-ABC1234567" b="XG-ABC1234567" c="G-ABC1234567890123"'
        assert list(patterns.iter_matches("ga4_measurement_id", text)) == ["G-ABC1234567"]

    def test_ua_and_ads(self):
        text = "UA-12345678-1 AW-987654321 DC-1234567"
        assert list(patterns.iter_matches("ua_property_id", text)) == ["UA-12345678-1"]
        assert list(patterns.iter_matches("google_ads_conversion_id", text)) == ["AW-987654321"]
        assert list(patterns.iter_matches("floodlight_advertiser_id", text)) == ["DC-1234567"]

    def test_pixel_calls(self):
        text = (
            "fbq( 'init' , \"1234567890123456\" ); ttq.load('C1ABCDEFGHIJKLMNOPQRS');"
            " _linkedin_partner_id = \"98765\"; pintrk('load', '2612345678901');"
            " {ti:\"12345678\"} {hjid:1234567,hjsv:6}"
        )

        hits = {(h.vendor, h.id_value) for h in scan_vendors(text)}

        assert hits == {
            ("Meta (Facebook)", "1234567890123456"),
            ("TikTok", "C1ABCDEFGHIJKLMNOPQRS"),
            ("LinkedIn", "98765"),
            ("Pinterest", "2612345678901"),
            ("Microsoft Advertising", "12345678"),
            ("Hotjar", "1234567"),
        }


class TestScanVendors:
    """Test scan_vendors deduplication and tag references."""

    def test_duplicate_ids_reported_once(self):
        """Test the same measurement id twice yields one hit."""
        text = "gtag('config','G-ABC1234567'); other('G-ABC1234567');"

        hits = scan_vendors(text)

        assert len(hits) == 1
        assert hits[0].vendor == "Google Analytics"
        assert hits[0].id_type == "GA4 Measurement ID"
        assert hits[0].id_value == "G-ABC1234567"
        assert hits[0].extra == ""

    def test_no_ids(self):
        assert scan_vendors("console.log('nothing here')") == []

    def test_tag_reference_counts(self, sample_source, sample_model):
        """Test extra notes how many decoded tags carry each id."""
        hits = scan_vendors(sample_source, sample_model.tags)

        assert [(h.vendor, h.id_value) for h in hits] == [
            ("Google Analytics", "G-ABC1234567"),
            ("Google Ads", "AW-123456789"),
            ("Meta (Facebook)", "123456789012345"),
        ]
        assert all(h.extra == "referenced by 1 tag(s)" for h in hits)

    def test_custom_library(self):
        lib = PatternLibrary()
        lib.add_pattern("acme", r"acme-(\d{4})", VendorSignature("Acme", "Account", group=1))

        hits = scan_vendors("acme-1234 G-ABC1234567", library=lib)

        assert [h.key for h in hits] == [("Acme", "Account", "1234")]


class TestScenarioA:
    """End-to-end: custom HTML Meta pixel in a var data container."""

    SOURCE = (
        "var data = {\"resource\": {\"tags\":[{\"function\":\"__html\","
        "\"vtp_html\":\"<script>fbq('init','123456789012345');</script>\"}], "
        "\"macros\":[], \"predicates\":[], \"rules\":[]}};"
    )

    def test_decode_and_scan(self):
        doc = locate_container(self.SOURCE, "GTM-TEST123")
        assert isinstance(doc, RawContainerDocument)

        model = decode_container(doc)

        assert len(model.tags) == 1
        assert model.tags[0].type == "Custom HTML"
        assert model.tags[0].vendor == "Meta (Facebook)"

        hits = scan_vendors(self.SOURCE)

        assert len(hits) == 1
        assert hits[0].vendor == "Meta (Facebook)"
        assert hits[0].id_type == "Pixel ID"
        assert hits[0].id_value == "123456789012345"


class TestEscapedPayloads:
    """Vendor calls inside JSON-encoded vtp_html strings."""

    def test_escaped_quotes(self):
        text = (
            'fbq(\\"init\\", \\"123456789012345\\"); ttq.load(\\"C1ABCDEFGHIJKLMNOPQRS\\");'
            ' _linkedin_partner_id = \\"98765\\"; pintrk(\\"load\\", \\"2612345678901\\");'
            ' {ti:\\"12345678\\"} {hjid:\\"1234567\\"}'
        )

        hits = {(h.vendor, h.id_value) for h in scan_vendors(text)}

        assert hits == {
            ("Meta (Facebook)", "123456789012345"),
            ("TikTok", "C1ABCDEFGHIJKLMNOPQRS"),
            ("LinkedIn", "98765"),
            ("Pinterest", "2612345678901"),
            ("Microsoft Advertising", "12345678"),
            ("Hotjar", "1234567"),
        }

    def test_scanner_agrees_with_decoder(self):
        """Test a double-quoted pixel call in a published container yields its id."""
        source = "var data = " + json.dumps({"resource": {
            "tags": [{"function": "__html", "vtp_html": '<script>fbq("init", "123456789012345");</script>'}],
            "macros": [], "predicates": [], "rules": []
        }}) + ";"

        model = decode_container(locate_container(source, "GTM-TEST123"))
        hits = scan_vendors(source, model.tags)

        assert model.tags[0].vendor == "Meta (Facebook)"
        assert [(h.vendor, h.id_value) for h in hits] == [("Meta (Facebook)", "123456789012345")]
