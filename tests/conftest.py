"""Shared test fixtures and configuration for GTM Inspector tests."""

import copy
import json
import sys
from pathlib import Path

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gtm_inspector.config import InspectorConfig
from gtm_inspector.decoding import decode_container
from gtm_inspector.models import RawContainerDocument


CONTAINER_ID = "GTM-TEST123"

SAMPLE_CONTAINER = {
    "resource": {
        "version": "12",
        "macros": [
            {"function": "__e"},
            {"function": "__v", "vtp_name": "ecommerce.items", "vtp_dataLayerVersion": 2},
            {"function": "__c", "vtp_value": "G-ABC1234567"},
            {"function": "__u", "vtp_component": "URL"},
            {"function": "__cvt_12_custom"}
        ],
        "tags": [
            {
                "function": "__gaawc",
                "tag_id": 5,
                "vtp_measurementId": "G-ABC1234567",
                "priority": 10,
                "consent": ["list", "analytics_storage"],
                "once_per_load": True
            },
            {
                "function": "__html",
                "tag_id": 7,
                "vtp_html": "<script>fbq('init','123456789012345');</script>",
                "consent": ["list", "ad_storage", "analytics_storage"],
                "once_per_event": True,
                "once_per_load": True,
                "setup_tags": ["list", ["tag", 0, 0]]
            },
            {
                "function": "__awct",
                "tag_id": 9,
                "vtp_conversionId": "AW-123456789"
            }
        ],
        "predicates": [
            {"function": "_eq", "arg0": ["macro", 0], "arg1": "gtm.js"},
            {"function": "_eq", "arg0": ["macro", 0], "arg1": "purchase"},
            {"function": "_cn", "arg0": ["macro", 3], "arg1": "/checkout"}
        ],
        "rules": [
            [["if", 0], ["add", 0, 1]],
            [["if", 1], ["add", 2], ["unless", 2]],
            [["if", 0, 2], ["block", 1]]
        ]
    },
    "runtime": []
}


def container_source(container: dict) -> str:
    """Wrap a container mapping the way gtm.js embeds it."""
    return (
        "// Copyright 2012 Google Inc. All rights reserved.\n"
        "(function(){\n"
        f"var data = {json.dumps(container)};\n"
        "var ba,ca=function(a){var b=0;return function(){return b<a.length?{done:!1,value:a[b++]}:{done:!0}}};\n"
        "})();\n"
    )


@pytest.fixture
def container_id():
    """Valid container id used throughout the tests."""
    return CONTAINER_ID


@pytest.fixture
def sample_container():
    """Deep copy of the sample container mapping."""
    return copy.deepcopy(SAMPLE_CONTAINER)


@pytest.fixture
def sample_source(sample_container):
    """Sample container embedded in gtm.js-like source text."""
    return container_source(sample_container)


@pytest.fixture
def sample_document(sample_container):
    """Raw document for the sample container."""
    return RawContainerDocument.from_mapping(sample_container["resource"], strategy="var_data_assignment")


@pytest.fixture
def sample_model(sample_document):
    """Decoded sample container."""
    return decode_container(sample_document)


@pytest.fixture
def test_config():
    """Configuration with no file output."""
    return InspectorConfig(environment="test")


@pytest.fixture
def stub_fetcher(sample_source):
    """Fetcher returning the sample source and recording requested ids."""
    class StubFetcher:
        def __init__(self, source):
            self.source = source
            self.calls = []

        def __call__(self, container_id):
            self.calls.append(container_id)
            return self.source

    return StubFetcher(sample_source)
