"""Unit tests for the container locator strategy cascade."""

import json

from gtm_inspector.parsing.locator import (
    ContainerLocator,
    LocatorLimits,
    locate_container,
    looks_like_container,
    unwrap_resource
)


CONTAINER_ID = "GTM-TEST123"


class TestShapeHelpers:
    """Test container shape helpers."""

    def test_looks_like_container(self):
        assert looks_like_container({"tags": []})
        assert looks_like_container({"predicates": [], "other": 1})
        assert not looks_like_container({"foo": 1})
        assert not looks_like_container([{"tags": []}])

    def test_unwrap_resource(self):
        assert unwrap_resource({"resource": {"tags": []}}) == {"tags": []}
        assert unwrap_resource({"resource": "x", "tags": []}) == {"resource": "x", "tags": []}
        assert unwrap_resource(None) is None


class TestContainerLocator:
    """Test each locator strategy and the fallthrough between them."""

    def setup_method(self):
        """Set up test with a default locator."""
        self.locator = ContainerLocator()

    def test_var_data_assignment(self, sample_source):
        """Test the embedded var data object is found first."""
        doc = self.locator.locate(sample_source, CONTAINER_ID)

        assert doc.strategy == "var_data_assignment"
        assert doc.located
        assert len(doc.tags) == 3
        assert len(doc.macros) == 5
        assert len(doc.predicates) == 3
        assert len(doc.rules) == 3

    def test_var_data_loose_syntax(self):
        """Test var data accepts JavaScript literal syntax."""
        source = "var data = {resource: {tags: [{'function': '__html', once_per_event: !0,}], macros: [],}};"

        doc = self.locator.locate(source, CONTAINER_ID)

        assert doc.strategy == "var_data_assignment"
        assert doc.tags == [{"function": "__html", "once_per_event": True}]

    def test_direct_container_assignment(self):
        """Test the id-keyed assignment with strict JSON."""
        source = 'window.google_tag_manager["GTM-TEST123"] = {"macros": [{"function": "__e"}]};'

        doc = self.locator.locate(source, CONTAINER_ID)

        assert doc.strategy == "direct_container_assignment"
        assert doc.macros == [{"function": "__e"}]

    def test_push_call(self):
        """Test a push call carrying a resource object."""
        source = 'window.dataLayer.push({"event": "gtm.js"});\nw.x.push({"resource": {"tags": [{"function": "__ua"}]}});'

        doc = self.locator.locate(source, CONTAINER_ID)

        assert doc.strategy == "push_call"
        assert doc.tags == [{"function": "__ua"}]

    def test_indexed_assignment_only(self):
        """Test a source matching only the indexed-assignment strategy still succeeds."""
        source = "google_tag_manager[ 'GTM-TEST123' ] = {\"tags\": [], \"rules\": [[[\"if\", 0]]]};"

        doc = self.locator.locate(source, CONTAINER_ID)

        assert doc.strategy == "indexed_container_assignment"
        assert doc.rules == [[["if", 0]]]

    def test_legacy_resource(self):
        """Test a bare resource wrapper object."""
        source = 'x = {"resource": {"tags": [{"function": "__html"}]}, "runtime": []};'

        doc = self.locator.locate(source, CONTAINER_ID)

        assert doc.strategy == "legacy_resource"
        assert doc.tags == [{"function": "__html"}]

    def test_non_container_var_data_falls_through(self):
        """Test a matched but non-container object does not stop the cascade."""
        source = (
            'var data = {"foo": 1};\n'
            "google_tag_manager['GTM-TEST123'] = {\"macros\": []};"
        )

        doc = self.locator.locate(source, CONTAINER_ID)

        assert doc.strategy == "indexed_container_assignment"

    def test_other_container_id_is_ignored(self):
        """Test id-keyed strategies only match the requested container."""
        source = 'google_tag_manager["GTM-OTHER"] = {"tags": []};'

        doc = self.locator.locate(source, CONTAINER_ID)

        assert doc.strategy is None

    def test_exhaustive_scan(self):
        """Test the exhaustive scan finds a large anonymous container object."""
        container = {
            "tags": [{"function": "__html", "vtp_html": "<div>" + "x" * 6000 + "</div>"}],
            "macros": [{"function": "__e"}]
        }
        source = "f(" + json.dumps(container) + ", 1);\n" + "/* padding */ " * 20

        doc = self.locator.locate(source, CONTAINER_ID)

        assert doc.strategy == "exhaustive_scan"
        assert len(doc.tags) == 1
        assert doc.macros == [{"function": "__e"}]

    def test_exhaustive_scan_respects_min_length(self):
        """Test small objects are not exhaustive-scan candidates."""
        source = 'f({"tags": [{"function": "__html"}]}, 1);' + " " * 200

        assert self.locator.locate(source, CONTAINER_ID).strategy is None

        relaxed = ContainerLocator(LocatorLimits(min_candidate_length=10))
        assert relaxed.locate(source, CONTAINER_ID).strategy == "exhaustive_scan"

    def test_strict_strategies_reject_loose_syntax(self):
        """Test strategies that require JSON skip loose literals without raising."""
        source = 'google_tag_manager["GTM-TEST123"] = {tags: []};'

        doc = self.locator.locate(source, CONTAINER_ID)

        assert doc.strategy is None
        assert doc.is_empty

    def test_total_failure(self):
        """Test unrecognizable source yields an empty document."""
        doc = locate_container("console.log('hello world');", CONTAINER_ID)

        assert doc.strategy is None
        assert not doc.located
        assert doc.is_empty
        assert doc.entities == {}

    def test_empty_source(self):
        """Test empty source is handled."""
        assert locate_container("", CONTAINER_ID).strategy is None

    def test_deep_push_candidate_does_not_stop_later_ones(self):
        """Test an overly nested push payload is skipped like any unparsable one."""
        depth = 100_000
        deep = '{"a":' * depth + "1" + "}" * depth
        source = f"x.push({deep});\ny.push({{\"tags\": [], \"macros\": []}});"

        doc = self.locator.locate(source, CONTAINER_ID)

        assert doc.strategy == "push_call"
        assert doc.tags == []


class TestExhaustiveScanLimits:
    """Test the count caps bounding the exhaustive scan."""

    CONTAINER = 'f({"tags": [{"function": "__html"}]}, 1);'

    def test_brace_window(self):
        """Test a container before the last N object starts is not considered."""
        source = self.CONTAINER + " g({});" * 5 + " " * 200

        narrow = ContainerLocator(LocatorLimits(min_candidate_length=10, max_brace_positions=3))
        wide = ContainerLocator(LocatorLimits(min_candidate_length=10, max_brace_positions=7))

        assert narrow.locate(source, CONTAINER_ID).strategy is None
        assert wide.locate(source, CONTAINER_ID).strategy == "exhaustive_scan"

    def test_candidate_cap(self):
        """Test only the largest candidates are parsed."""
        filler = json.dumps({"items": ["x" * 200]})
        source = self.CONTAINER + " h(" + filler + ");" + " " * 200

        capped = ContainerLocator(LocatorLimits(min_candidate_length=10, max_candidates=1))
        relaxed = ContainerLocator(LocatorLimits(min_candidate_length=10, max_candidates=2))

        assert capped.locate(source, CONTAINER_ID).strategy is None
        doc = relaxed.locate(source, CONTAINER_ID)
        assert doc.strategy == "exhaustive_scan"
        assert doc.tags == [{"function": "__html"}]
