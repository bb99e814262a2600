"""Tests for the transport reconciler decision matrix."""

import json

import pytest
from starlette.responses import JSONResponse, Response

from conftest import (
    FailingAggregator,
    FakeInvoker,
    chat_completion,
    read_body,
    responses_event_stream,
    streaming_response,
)
from responses_bridge.core.invoker import InvocationContext, UpstreamResult
from responses_bridge.responses.reconciler import (
    AGGREGATION_FAILED_MESSAGE,
    TransportReconciler,
    duplicate_body,
    normalize_stream_flag,
)


def _json_response(document, status_code=200, headers=None) -> Response:
    return Response(
        content=json.dumps(document).encode("utf-8"),
        status_code=status_code,
        headers=headers,
        media_type="application/json",
    )


class TestNormalizeStreamFlag:
    """Tests for the outbound stream flag."""

    def test_absent_flag_becomes_false(self):
        request = {"model": "m", "input": "hi"}
        outbound = normalize_stream_flag(request)
        assert outbound == {"model": "m", "input": "hi", "stream": False}
        assert "stream" not in request

    @pytest.mark.parametrize("value", [True, False, "true", 1, None])
    def test_explicit_flag_is_forwarded_verbatim(self, value):
        request = {"model": "m", "stream": value}
        assert normalize_stream_flag(request) is request


@pytest.mark.asyncio
async def test_stream_request_with_stream_reply_passes_through():
    upstream = streaming_response(
        responses_event_stream(), headers={"x-upstream": "1"}, status_code=200
    )
    result = UpstreamResult.ok(upstream)
    reconciler = TransportReconciler(FakeInvoker(result))

    outcome = await reconciler.handle({"model": "m", "stream": True})

    assert outcome is result
    assert outcome.response is upstream
    assert outcome.response.headers["x-upstream"] == "1"


@pytest.mark.asyncio
async def test_forced_stream_is_aggregated_into_json():
    upstream = streaming_response(responses_event_stream(text="All done"), media_type=None)
    invoker = FakeInvoker(UpstreamResult.ok(upstream))
    reconciler = TransportReconciler(invoker)

    outcome = await reconciler.handle(
        {"model": "codex/gpt", "input": "hi"},
        InvocationContext(provider="codex"),
    )

    assert outcome.success is True
    response = outcome.response
    assert isinstance(response, JSONResponse)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["access-control-allow-origin"] == "*"
    document = json.loads(response.body)
    assert document["status"] == "completed"
    assert document["output"][0]["content"][0]["text"] == "All done"
    assert invoker.calls[0][0]["stream"] is False


@pytest.mark.asyncio
async def test_event_stream_reply_is_aggregated_for_buffered_client():
    upstream = streaming_response(responses_event_stream())
    reconciler = TransportReconciler(FakeInvoker(UpstreamResult.ok(upstream)))

    outcome = await reconciler.handle({"model": "m", "stream": False})

    assert json.loads(outcome.response.body)["id"] == "resp_abc"


@pytest.mark.asyncio
async def test_aggregation_failure_is_a_500(caplog):
    upstream = streaming_response(responses_event_stream(), media_type=None)
    reconciler = TransportReconciler(
        FakeInvoker(UpstreamResult.ok(upstream)),
        aggregator=FailingAggregator(),
    )

    with caplog.at_level("ERROR", logger="responses-bridge"):
        outcome = await reconciler.handle({"model": "m"}, InvocationContext(provider="codex"))

    assert outcome.success is False
    assert outcome.status == 500
    assert outcome.error == AGGREGATION_FAILED_MESSAGE
    assert outcome.response is None
    assert "decoder blew up" in caplog.text


@pytest.mark.asyncio
async def test_truncated_stream_fails_aggregation():
    frames = responses_event_stream()[:-1]
    reconciler = TransportReconciler(
        FakeInvoker(UpstreamResult.ok(streaming_response(frames)))
    )

    outcome = await reconciler.handle({"model": "m"})

    assert (outcome.success, outcome.status) == (False, 500)


@pytest.mark.asyncio
async def test_buffered_chat_reply_is_converted(clock):
    chat = chat_completion(
        content=None,
        tool_calls=[{"id": "call_9", "type": "function", "function": {"name": "f", "arguments": "{}"}}],
    )
    upstream = _json_response(chat, status_code=201, headers={"x-request-id": "abc"})
    reconciler = TransportReconciler(FakeInvoker(UpstreamResult.ok(upstream)), clock=clock)

    outcome = await reconciler.handle({"model": "m", "stream": False})

    response = outcome.response
    assert response is not upstream
    assert response.status_code == 201
    assert response.headers["x-request-id"] == "abc"
    assert response.headers["content-type"] == "application/json"
    document = json.loads(response.body)
    assert document["output"][0]["type"] == "function_call"
    assert document["output"][0]["call_id"] == "call_9"
    assert int(response.headers["content-length"]) == len(response.body)
    # the upstream response is left untouched
    assert json.loads(upstream.body) == chat


@pytest.mark.asyncio
async def test_buffered_reply_with_non_json_content_type_is_converted(clock):
    upstream = Response(
        content=json.dumps(chat_completion(content="hi")).encode("utf-8"),
        media_type="text/plain",
    )
    reconciler = TransportReconciler(FakeInvoker(UpstreamResult.ok(upstream)), clock=clock)

    outcome = await reconciler.handle({"model": "m"})

    assert outcome.response.headers["content-type"] == "application/json"
    assert json.loads(outcome.response.body)["output"][0]["type"] == "message"


@pytest.mark.asyncio
async def test_responses_shaped_reply_passes_through_byte_identical():
    body = json.dumps({"id": "resp_1", "object": "response", "output": []}).encode("utf-8")
    upstream = Response(content=body, media_type="application/json")
    result = UpstreamResult.ok(upstream)
    reconciler = TransportReconciler(FakeInvoker(result))

    outcome = await reconciler.handle({"model": "m", "stream": False})

    assert outcome is result
    assert outcome.response.body == body


@pytest.mark.asyncio
async def test_unparseable_buffered_reply_passes_through():
    upstream = Response(content=b"<html>oops</html>", media_type="text/html")
    result = UpstreamResult.ok(upstream)
    reconciler = TransportReconciler(FakeInvoker(result))

    outcome = await reconciler.handle({"model": "m"})

    assert outcome is result
    assert outcome.response.body == b"<html>oops</html>"


@pytest.mark.asyncio
async def test_stream_request_with_buffered_reply_is_not_converted():
    upstream = _json_response(chat_completion(content="hi"))
    result = UpstreamResult.ok(upstream)
    reconciler = TransportReconciler(FakeInvoker(result))

    outcome = await reconciler.handle({"model": "m", "stream": True})

    assert outcome is result
    assert json.loads(outcome.response.body)["object"] == "chat.completion"


@pytest.mark.asyncio
async def test_truthy_non_boolean_stream_counts_as_buffered():
    upstream = streaming_response(responses_event_stream())
    invoker = FakeInvoker(UpstreamResult.ok(upstream))
    reconciler = TransportReconciler(invoker)

    outcome = await reconciler.handle({"model": "m", "stream": "true"})

    assert isinstance(outcome.response, JSONResponse)
    assert invoker.calls[0][0]["stream"] == "true"


@pytest.mark.asyncio
async def test_unlabelled_stream_from_unknown_provider_is_buffered(clock):
    chat = chat_completion(content="from a stream object")
    upstream = streaming_response(
        [json.dumps(chat).encode("utf-8")], media_type=None, headers={"x-a": "b"}
    )
    reconciler = TransportReconciler(FakeInvoker(UpstreamResult.ok(upstream)), clock=clock)

    outcome = await reconciler.handle({"model": "m"}, InvocationContext(provider="openai"))

    document = json.loads(outcome.response.body)
    assert document["output"][0]["content"][0]["text"] == "from a stream object"
    assert outcome.response.headers["x-a"] == "b"


@pytest.mark.asyncio
async def test_unlabelled_non_json_stream_survives_duplication():
    upstream = streaming_response([b"plain ", b"text"], media_type=None)
    reconciler = TransportReconciler(FakeInvoker(UpstreamResult.ok(upstream)))

    outcome = await reconciler.handle({"model": "m"})

    assert outcome.success is True
    assert await read_body(outcome.response) == b"plain text"


@pytest.mark.asyncio
async def test_upstream_failure_is_returned_unchanged():
    failure = UpstreamResult.failure(429, "rate limited")
    reconciler = TransportReconciler(FakeInvoker(failure))

    outcome = await reconciler.handle({"model": "m"})

    assert outcome is failure


@pytest.mark.asyncio
async def test_context_is_forwarded_to_invoker():
    invoker = FakeInvoker(UpstreamResult.failure(500, "x"))
    reconciler = TransportReconciler(invoker)

    async def is_disconnected():
        return False

    context = InvocationContext(provider="openai", disconnect_checker=is_disconnected)
    await reconciler.handle({"model": "m"}, context)

    assert invoker.calls[0][1] is context


@pytest.mark.asyncio
async def test_duplicate_body_keeps_buffered_response():
    upstream = Response(content=b"abc")
    body, intact = await duplicate_body(upstream)
    assert body == b"abc"
    assert intact is upstream


@pytest.mark.asyncio
async def test_buffered_reply_with_non_finite_number_passes_through(clock):
    body = b'{"id": "x", "choices": [], "usage": {"prompt_tokens": NaN}}'
    upstream = Response(content=body, media_type="application/json")
    result = UpstreamResult.ok(upstream)
    reconciler = TransportReconciler(FakeInvoker(result), clock=clock)

    outcome = await reconciler.handle({"model": "m", "stream": False})

    assert outcome is result
    assert outcome.response.body == body


@pytest.mark.asyncio
async def test_buffered_reply_with_string_token_counts_is_converted(clock):
    chat = chat_completion(content="hi")
    chat["usage"] = {"prompt_tokens": "5", "completion_tokens": 2}
    reconciler = TransportReconciler(FakeInvoker(UpstreamResult.ok(_json_response(chat))), clock=clock)

    outcome = await reconciler.handle({"model": "m", "stream": False})

    document = json.loads(outcome.response.body)
    assert document["usage"] == {"input_tokens": 0, "output_tokens": 2, "total_tokens": 2}


@pytest.mark.asyncio
async def test_unrenderable_aggregate_is_a_500():
    class NonFiniteAggregator:
        async def aggregate(self, body):
            return {"id": "r", "object": "response", "usage": {"input_tokens": float("nan")}}

    upstream = streaming_response(responses_event_stream())
    reconciler = TransportReconciler(
        FakeInvoker(UpstreamResult.ok(upstream)), aggregator=NonFiniteAggregator()
    )

    outcome = await reconciler.handle({"model": "m", "stream": False})

    assert (outcome.success, outcome.status) == (False, 500)
    assert outcome.error == AGGREGATION_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_converted_reply_keeps_repeated_headers(clock):
    upstream = _json_response(chat_completion(content="hi"))
    upstream.raw_headers.extend([(b"set-cookie", b"a=1"), (b"set-cookie", b"b=2")])
    reconciler = TransportReconciler(FakeInvoker(UpstreamResult.ok(upstream)), clock=clock)

    outcome = await reconciler.handle({"model": "m", "stream": False})

    assert outcome.response.headers.getlist("set-cookie") == ["a=1", "b=2"]
    assert outcome.response.headers.getlist("content-type") == ["application/json"]


@pytest.mark.asyncio
async def test_duplicated_stream_keeps_repeated_headers():
    upstream = streaming_response([b"plain text"], media_type=None)
    upstream.raw_headers.extend([(b"set-cookie", b"a=1"), (b"set-cookie", b"b=2")])

    body, replacement = await duplicate_body(upstream)

    assert body == b"plain text"
    assert replacement.headers.getlist("set-cookie") == ["a=1", "b=2"]
    assert replacement.headers["content-length"] == str(len(body))
