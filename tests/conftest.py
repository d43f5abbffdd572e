from __future__ import annotations

import pytest

from stubs import A_RESULT, D_RESULT, StubLLM, StubRetriever


@pytest.fixture
def stub_llm() -> StubLLM:
    return StubLLM()


@pytest.fixture
def stub_retriever() -> StubRetriever:
    return StubRetriever([A_RESULT, D_RESULT])
