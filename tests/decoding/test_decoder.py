"""Unit tests for the container model decoder."""

import pytest

from gtm_inspector.decoding import ContainerDecoder, decode_container
from gtm_inspector.decoding.decoder import (
    extract_consent,
    extract_firing_option,
    extract_tag_references,
    is_plausible_event_name,
    tag_identifier
)
from gtm_inspector.errors import IssueCategory
from gtm_inspector.models import FiringOption, RawContainerDocument


def document(**fields):
    return RawContainerDocument(strategy="test", **fields)


class TestTagFields:
    """Test per-field tag extraction helpers."""

    def test_consent_exact_tokens(self):
        """Test consent decodes to exactly the listed tokens."""
        consent = extract_consent({"consent": ["list", "ad_storage", "analytics_storage"]})
        assert consent == frozenset({"analytics_storage", "ad_storage"})

    @pytest.mark.parametrize("tag", [
        {},
        {"consent": None},
        {"consent": "ad_storage"},
        {"consent": ["ad_storage"]},
        {"consent": ["list"]},
        {"consent": ["list", 1, "ad_storage"]},
    ])
    def test_consent_absent_or_malformed(self, tag):
        """Test missing or malformed consent decodes to None."""
        assert extract_consent(tag) is None

    def test_firing_option_precedence(self):
        """Test once-per-event wins over once-per-page."""
        tag = {"once_per_event": True, "once_per_load": True}
        assert extract_firing_option(tag) == FiringOption.ONCE_PER_EVENT

    @pytest.mark.parametrize("tag,expected", [
        ({"once_per_load": True}, FiringOption.ONCE_PER_PAGE),
        ({"once_per_page": 1}, FiringOption.ONCE_PER_PAGE),
        ({"once_per_event": "true"}, FiringOption.ONCE_PER_EVENT),
        ({"once_per_event": False}, FiringOption.UNLIMITED),
        ({}, FiringOption.UNLIMITED),
    ])
    def test_firing_option_flags(self, tag, expected):
        assert extract_firing_option(tag) == expected

    def test_tag_references(self):
        """Test setup/teardown references skip malformed entries."""
        value = ["list", ["tag", 3, 0], ["tag"], "junk", ["tag", "12"], ["macro", 1]]
        assert extract_tag_references(value) == ["3", "12"]
        assert extract_tag_references(None) == []

    def test_tag_identifier(self):
        assert tag_identifier({"tag_id": 42, "function": "__html"}, 0) == "42"
        assert tag_identifier({"function": "__html"}, 3) == "__html"
        assert tag_identifier({"tag_id": True}, 3) == "tag_3"
        assert tag_identifier("junk", 1) == "tag_1"

    def test_event_name_plausibility(self):
        assert is_plausible_event_name("gtm.js")
        assert is_plausible_event_name("add_to_cart")
        assert not is_plausible_event_name("https://example.com/page")
        assert not is_plausible_event_name("example.com")
        assert not is_plausible_event_name("x" * 101)
        assert not is_plausible_event_name("")


class TestContainerDecoder:
    """Test decoding of the sample container."""

    def setup_method(self):
        """Set up test with a fresh decoder."""
        self.decoder = ContainerDecoder()

    def test_counts_match_source_arrays(self, sample_document):
        model = self.decoder.decode(sample_document)

        assert len(model.tags) == len(sample_document.tags)
        assert len(model.triggers) == len(sample_document.rules)
        assert len(model.variables) == len(sample_document.macros)
        assert model.issues == []

    def test_tags(self, sample_model):
        """Test tag classification, naming and firing links."""
        ga4, html, ads = sample_model.tags

        assert ga4.id == "5"
        assert ga4.type == "GA4 Config"
        assert ga4.vendor == "Google Analytics"
        assert ga4.name == "G-ABC1234567"
        assert ga4.priority == 10
        assert ga4.firing_option == FiringOption.ONCE_PER_PAGE
        assert ga4.consent_label == "analytics_storage"
        assert ga4.firing_trigger_ids == ["trigger_0"]

        assert html.type == "Custom HTML"
        assert html.vendor == "Meta (Facebook)"
        assert html.name == ""
        assert html.firing_option == FiringOption.ONCE_PER_EVENT
        assert html.consent_label == "ad_storage, analytics_storage"
        assert html.firing_trigger_ids == ["trigger_0"]
        assert html.blocking_trigger_ids == ["trigger_2"]
        assert html.setup_tag_ids == ["0"]

        assert ads.type == "Google Ads Conversion Tracking"
        assert ads.vendor == "Google Ads"
        assert ads.name == "AW-123456789"
        assert ads.consent_requirements is None
        assert ads.consent_label == "None"
        assert ads.firing_trigger_ids == ["trigger_1"]

    def test_triggers(self, sample_model):
        """Test triggers synthesized from rules and predicates."""
        page_view, purchase, conditional = sample_model.triggers

        assert page_view.id == "trigger_0"
        assert page_view.type == "Page View"
        assert page_view.event_name == "gtm.js"
        assert page_view.name == "Trigger: gtm.js"
        assert page_view.conditions_summary == 'event == "gtm.js"'
        assert page_view.exceptions_summary == "None"
        assert page_view.tag_ids == ["5", "7"]

        assert purchase.type == "Custom Event"
        assert purchase.event_name == "purchase"
        assert purchase.exceptions_summary == '{{macro 3}} contains "/checkout"'
        assert purchase.tag_ids == ["9"]

        assert conditional.type == "Page View (conditional)"
        assert conditional.name == "Trigger: gtm.js / /checkout"
        assert conditional.conditions_summary == 'event == "gtm.js" AND {{macro 3}} contains "/checkout"'
        assert conditional.tag_ids == []

    def test_variables(self, sample_model):
        """Test variable typing, naming and details."""
        event, data_layer, constant, url, custom = sample_model.variables

        assert event.type == "Custom Event"
        assert event.name == "Variable #1 (__e)"

        assert data_layer.type == "Data Layer Variable"
        assert data_layer.data_layer_path == "ecommerce.items"
        assert data_layer.details_summary == "dataLayer: ecommerce.items (v2)"

        assert constant.type == "Constant"
        assert constant.name == "G-ABC1234567"

        assert url.name == "URL"
        assert url.details_summary == "URL component: URL"

        assert custom.type == "__cvt_12_custom"
        assert custom.data_layer_path == ""

    def test_idempotence(self, sample_document):
        """Test decoding the same document twice yields identical records."""
        first = self.decoder.decode(sample_document)
        second = ContainerDecoder().decode(sample_document)
        third = self.decoder.decode(sample_document)

        for other in (second, third):
            assert other.tags == first.tags
            assert other.triggers == first.triggers
            assert other.variables == first.variables

    def test_empty_document(self):
        model = decode_container(RawContainerDocument())
        assert model.is_empty
        assert model.issues == []


class TestDecoderEdgeCases:
    """Test degraded and malformed inputs."""

    def test_out_of_range_predicate(self):
        """Test a rule referencing a missing predicate falls back to All Pages."""
        doc = document(
            tags=[{"function": "__html"}],
            predicates=[],
            rules=[[["if", 99], ["add", 0]], {"add": [5], "tags": [0]}]
        )

        model = decode_container(doc)

        assert len(model.triggers) == 2
        for trigger in model.triggers:
            assert trigger.conditions_summary == "All Pages"
            assert trigger.type == "Custom Trigger"
            assert trigger.name.startswith("Trigger #")
        assert model.tags[0].firing_trigger_ids == ["trigger_0", "trigger_1"]

    def test_out_of_range_tag_reference(self):
        """Test a rule adding a missing tag is ignored."""
        doc = document(tags=[], rules=[[["add", 4]]])

        model = decode_container(doc)

        assert model.triggers[0].tag_ids == []

    def test_predicate_list_form(self):
        """Test positional predicates are decoded."""
        doc = document(
            predicates=[["_eq", ["macro", 0], "gtm.dom"]],
            rules=[[["if", 0]]]
        )

        trigger = decode_container(doc).triggers[0]

        assert trigger.type == "DOM Ready"
        assert trigger.event_name == "gtm.dom"

    def test_dict_event_macro_reference(self):
        """Test event tests written as {"macro": "0"}."""
        doc = document(
            predicates=[{"function": "_eq", "arg0": {"macro": "0"}, "arg1": "signup"}],
            rules=[{"if": [0], "add": []}]
        )

        trigger = decode_container(doc).triggers[0]

        assert trigger.event_name == "signup"
        assert trigger.type == "Custom Event"

    def test_url_operand_is_not_event_name(self):
        """Test URL-like operands are not taken as event names."""
        doc = document(
            predicates=[{"function": "_cn", "arg0": ["macro", 0], "arg1": "https://example.com"}],
            rules=[[["if", 0]]]
        )

        trigger = decode_container(doc).triggers[0]

        assert trigger.event_name == ""
        assert trigger.type == "Page View (conditional)"

    def test_malformed_records_become_placeholders(self):
        """Test a malformed record is replaced and reported, not fatal."""
        doc = document(
            tags=["not a map", {"function": "__ua"}],
            macros=[None, {"function": "__v", "vtp_name": "page"}]
        )

        model = decode_container(doc)

        assert len(model.tags) == 2
        placeholder = model.tags[0]
        assert placeholder.id == "tag_0"
        assert placeholder.type == "Unknown"
        assert placeholder.raw_source == "not a map"
        assert model.tags[1].type == "Universal Analytics"

        assert model.variables[0].id == "var_0"
        assert model.variables[0].name == "Variable #1 (unknown)"
        assert model.variables[1].data_layer_path == "page"

        operations = sorted(issue.operation for issue in model.issues)
        assert operations == ["decode_tag", "decode_variable"]
        assert all(issue.category == IssueCategory.DATA_QUALITY for issue in model.issues)

    def test_entity_names(self):
        """Test entity-table lookups for tags and triggers."""
        doc = document(
            tags=[{"function": "__html"}],
            rules=[[["add", 0]]],
            entities={"0": ["Homepage Banner"], "4": ["Checkout Trigger"]}
        )

        model = decode_container(doc)

        assert model.tags[0].name == "Homepage Banner"
        assert model.triggers[0].name == "Checkout Trigger"

    def test_conditions_outrank_entity_trigger_name(self):
        """Test rules with conditions keep their own synthesized names."""
        doc = document(
            predicates=[
                {"function": "_eq", "arg0": ["macro", 0], "arg1": "gtm.js"},
                {"function": "_eq", "arg0": ["macro", 0], "arg1": "purchase"}
            ],
            rules=[[["if", 0], ["add", 0]], [["if", 1], ["add", 0]], [["add", 0]]],
            entities={"7": ["Checkout Trigger"]}
        )

        names = [trigger.name for trigger in decode_container(doc).triggers]

        assert names == ["Trigger: gtm.js", "Trigger: purchase", "Checkout Trigger"]

    def test_metadata_name(self):
        doc = document(tags=[{"function": "__html", "metadata": ["map", "name", "Chat widget"]}])
        assert decode_container(doc).tags[0].name == "Chat widget"
