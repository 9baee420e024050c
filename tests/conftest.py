# FILE: tests/conftest.py
"""
Pytest configuration for the Recall test suite.

Async tests use pytest-asyncio via @pytest.mark.asyncio. Shared fakes live
in tests/fakes.py.
"""
import logging

import pytest

from fakes import FakeBackend, FakeCorpus, make_document


@pytest.fixture
def docs():
    """Small mixed corpus: plain notes, a chat log and a database row."""
    return [
        make_document("n1", "Project Alpha kickoff", "Alpha scope agreed. Budget pending.", folder="Work"),
        make_document("n2", "Groceries", "milk, eggs, bread", folder="Personal"),
        make_document(
            "n3",
            "Team chat",
            "[2024-03-01 10:15] Sam: alpha demo is friday\n[2024-03-01 10:16] Kim: ok, I'll prep slides",
            folder="Chats",
        ),
        make_document("n4", "Vendor record", "Name: Acme\nStatus: active\nContact: ops@acme.test"),
    ]


@pytest.fixture
def corpus(docs):
    return FakeCorpus(docs)


@pytest.fixture
def gemini_fake():
    return FakeBackend("gemini", reply="Alpha kicked off in March.\nSources: Project Alpha kickoff")


@pytest.fixture(autouse=True)
def _quiet_httpx():
    logging.getLogger("httpx").setLevel(logging.WARNING)
    yield
