"""
Property-based tests for OpenAIEmbeddingClient.

**Feature: mbs-vector-sync, Property 12: Single Attempt Per Embedding**
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from mbs_sync.infrastructure.embedding import (
    DimensionMismatchError,
    EmbeddingRequestError,
    InvalidResponseError,
    OpenAIEmbeddingClient,
    parse_embedding_response,
)

DIMENSION = 4

text_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N", "P", "S")),
    min_size=1,
    max_size=100,
)


def _response(status_code: int = 200, body=None, text: str = ""):
    # MagicMock for the sync json() method
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.text = text
    if isinstance(body, Exception):
        mock_response.json.side_effect = body
    else:
        mock_response.json.return_value = body
    return mock_response


def _ok(dimension: int = DIMENSION):
    return _response(200, {"data": [{"index": 0, "embedding": [0.5] * dimension}]})


def _client() -> OpenAIEmbeddingClient:
    return OpenAIEmbeddingClient(
        api_url="https://api.example.com/v1/embeddings",
        api_key="test-key",
        model="test-model",
        dimension=DIMENSION,
    )


def _embed(client: OpenAIEmbeddingClient, text: str, post):
    """Run client.embed with httpx.AsyncClient replaced by a mock using post."""

    async def run_test():
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.is_closed = False
            mock_client.post = post
            mock_client_class.return_value = mock_client
            return await client.embed(text)

    return asyncio.run(run_test())


@given(text=text_strategy)
@settings(max_examples=100, deadline=None)
def test_one_request_per_embedding(text: str):
    """
    **Feature: mbs-vector-sync, Property 12: Single Attempt Per Embedding**

    *For any* text, embed() sends exactly one request carrying that text and
    the configured model, with bearer authentication.
    """
    requests = []

    async def mock_post(url, headers, json):
        requests.append((url, headers, json))
        return _ok()

    vector = _embed(_client(), text, mock_post)

    assert len(vector) == DIMENSION
    assert len(requests) == 1
    url, headers, payload = requests[0]
    assert url == "https://api.example.com/v1/embeddings"
    assert headers["Authorization"] == "Bearer test-key"
    assert payload == {"input": text, "model": "test-model"}


@pytest.mark.parametrize("status_code", [401, 403, 429, 500, 503])
def test_error_status_fails_without_retry(status_code):
    calls = []

    async def mock_post(url, headers, json):
        calls.append(json)
        return _response(status_code, text="nope")

    with pytest.raises(EmbeddingRequestError):
        _embed(_client(), "hello", mock_post)

    assert len(calls) == 1


def test_authentication_failure_message():
    async def mock_post(url, headers, json):
        return _response(401, text="bad key")

    with pytest.raises(EmbeddingRequestError, match="Authentication failed"):
        _embed(_client(), "hello", mock_post)


def test_transport_error():
    async def mock_post(url, headers, json):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(EmbeddingRequestError):
        _embed(_client(), "hello", mock_post)


def test_timeout():
    async def mock_post(url, headers, json):
        raise httpx.ReadTimeout("timed out")

    with pytest.raises(EmbeddingRequestError, match="timeout"):
        _embed(_client(), "hello", mock_post)


def test_body_not_json():
    async def mock_post(url, headers, json):
        return _response(200, ValueError("Expecting value"))

    with pytest.raises(InvalidResponseError):
        _embed(_client(), "hello", mock_post)


def test_wrong_dimension():
    async def mock_post(url, headers, json):
        return _ok(dimension=DIMENSION + 1)

    with pytest.raises(DimensionMismatchError):
        _embed(_client(), "hello", mock_post)


def test_validate_embeds_test_text():
    texts = []

    async def mock_post(url, headers, json):
        texts.append(json["input"])
        return _ok()

    async def run_test():
        client = _client()
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.is_closed = False
            mock_client.post = mock_post
            mock_client_class.return_value = mock_client
            await client.validate()

    asyncio.run(run_test())

    assert texts == ["test"]


def test_invalid_dimension():
    with pytest.raises(ValueError):
        OpenAIEmbeddingClient(api_url="http://x", api_key="k", dimension=0)


class TestParseEmbeddingResponse:
    def test_valid(self):
        assert parse_embedding_response({"data": [{"embedding": [1, 2]}]}, 2) == [1.0, 2.0]

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"data": []},
            {"data": [{}]},
            {"data": [{"embedding": "not a list"}]},
            {"data": [{"embedding": ["x", "y"]}]},
            [],
        ],
    )
    def test_invalid(self, body):
        with pytest.raises(InvalidResponseError):
            parse_embedding_response(body, 2)

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            parse_embedding_response({"data": [{"embedding": [1.0]}]}, 2)
