"""Tests for ChatClient (request preparation, chain wiring, streaming bridges, error wrapping)."""

from unittest.mock import MagicMock

from django.test import SimpleTestCase, override_settings
from pydantic import BaseModel

from chatflow.core.openai import OpenAICompatibleChatModel
from chatflow.service.client import ChatClient, create_chat_client
from chatflow.service.errors import (
    ConfigurationError,
    DuplicateToolError,
    ModelProviderError,
    OutputParseError,
    PolicyDenied,
    StreamParseError,
    ToolNotFoundError,
)
from chatflow.stages import BaseStage
from chatflow.tools import FunctionToolCallback
from chatflow.types.messages import Message
from chatflow.types.options import ChatOptions
from chatflow.types.requests import ChatRequest

from .utils import (
    FakeModel,
    ScriptedTransport,
    chunk,
    completion_body,
    text_response,
    tool_call_fragment,
    usage_dict,
    usage_frame,
    wire_tool_call,
)


class CityWeather(BaseModel):
    city: str
    forecast: str


def weather_tool():
    return FunctionToolCallback(
        "get_weather",
        lambda args, ctx: f"sunny in {args['city']}",
        description="Current weather for a city",
        parameters={"type": "object", "properties": {"city": {"type": "string"}}},
    )


def conversation():
    return ChatRequest(messages=[Message.system("You are terse."), Message.user("Say hello")])


# Same answer delivered whole and as deltas.
HELLO_BODY = completion_body("Hello, world!", usage=usage_dict(8, 4))
HELLO_FRAMES = [
    chunk(content="Hel"),
    chunk(content="lo, "),
    chunk(content="world"),
    chunk(content="!", finish_reason="stop"),
    usage_frame(8, 4),
    "[DONE]",
]

WEATHER_STREAMS = [
    [
        chunk(tool_calls=[tool_call_fragment(0, id="c1", name="get_weather", arguments='{"city":')]),
        chunk(tool_calls=[tool_call_fragment(0, arguments='"Paris"}')]),
        chunk(finish_reason="tool_calls", usage=usage_dict(10, 5)),
        "[DONE]",
    ],
    [
        chunk(content="It is "),
        chunk(content="sunny.", finish_reason="stop"),
        usage_frame(20, 4),
        "[DONE]",
    ],
]


@override_settings(
    CHATFLOW_DEFAULT_MODEL="gpt-4o-mini",
    CHATFLOW_ALLOWED_MODELS=[],
    CHATFLOW_MAX_TOOL_ITERATIONS=8,
    CHATFLOW_MAX_CONCURRENT_STREAMS=2,
)
class ChatClientTests(SimpleTestCase):
    def openai_client(self, transport, **kwargs):
        return ChatClient(OpenAICompatibleChatModel(transport, default_model="gpt-4o-mini"), **kwargs)

    def test_requires_a_model(self):
        with self.assertRaises(ConfigurationError):
            ChatClient(None)

    def test_zero_tool_iterations_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            ChatClient(FakeModel(text_response("x")), max_tool_iterations=0)

    def test_call_entity_appends_schema_and_parses_answer(self):
        model = FakeModel(text_response('{"city": "Paris", "forecast": "sunny"}'))
        request = ChatRequest(messages=[Message.user("Weather in Paris?")])
        weather = ChatClient(model).call_entity(request, CityWeather)
        self.assertEqual(weather, CityWeather(city="Paris", forecast="sunny"))
        sent = model.requests[0].messages
        self.assertEqual(len(sent), 2)
        self.assertEqual(sent[-1].role, "system")
        self.assertIn('"forecast"', sent[-1].text)
        self.assertEqual(len(request.messages), 1)

    def test_call_entity_invalid_answer_raises(self):
        model = FakeModel(text_response("It is sunny in Paris."))
        with self.assertRaises(OutputParseError) as cm:
            ChatClient(model).call_entity(conversation(), CityWeather)
        self.assertEqual(cm.exception.text, "It is sunny in Paris.")

    def test_duplicate_default_tools_fail_at_construction(self):
        with self.assertRaises(DuplicateToolError):
            ChatClient(FakeModel(text_response("x")), tools=[weather_tool(), weather_tool()])

    def test_request_tool_clashing_with_default_tool_fails(self):
        client = ChatClient(FakeModel(text_response("x")), tools=[weather_tool()])
        request = ChatRequest(messages=[Message.user("hi")], tool_callbacks=[weather_tool()])
        with self.assertRaises(DuplicateToolError):
            client.call(request)

    def test_call_fills_run_id_and_resolves_model(self):
        model = FakeModel(text_response("hi"))
        request = conversation()
        ChatClient(model).call(request)
        self.assertTrue(request.context["run_id"])
        self.assertEqual(model.requests[0].options.model, "gpt-4o-mini")
        self.assertEqual(model.requests[0].run_id, request.context["run_id"])

    def test_existing_run_id_is_kept(self):
        model = FakeModel(text_response("hi"))
        request = ChatRequest(messages=[Message.user("hi")], context={"run_id": "abc"})
        ChatClient(model).call(request)
        self.assertEqual(model.requests[0].run_id, "abc")

    def test_default_options_are_merged_under_request_options(self):
        model = FakeModel(text_response("hi"))
        client = ChatClient(model, options=ChatOptions(temperature=0.1, max_tokens=10))
        client.call(ChatRequest(messages=[Message.user("hi")], options=ChatOptions(temperature=0.7)))
        options = model.requests[0].options
        self.assertEqual(options.temperature, 0.7)
        self.assertEqual(options.max_tokens, 10)

    @override_settings(CHATFLOW_ALLOWED_MODELS=["gpt-4o"])
    def test_disallowed_model_is_denied(self):
        client = ChatClient(FakeModel(text_response("hi")))
        with self.assertRaises(PolicyDenied):
            client.call(ChatRequest(messages=[Message.user("hi")], options=ChatOptions(model="other")))

    def test_unexpected_errors_are_wrapped(self):
        model = MagicMock()
        model.call.side_effect = RuntimeError("socket closed")
        with self.assertLogs("chatflow.service.logger", level="ERROR"):
            with self.assertRaises(ModelProviderError) as cm:
                ChatClient(model).call(conversation())
        self.assertIsInstance(cm.exception.__cause__, RuntimeError)

    def test_unknown_tool_from_model_is_fatal(self):
        transport = ScriptedTransport(responses=[
            completion_body(None, tool_calls=[wire_tool_call("c1", "launch_rockets", "{}")], finish_reason="tool_calls"),
        ])
        client = self.openai_client(transport, tools=[weather_tool()])
        with self.assertRaises(ToolNotFoundError):
            client.call(conversation())

    def test_stages_run_around_the_model(self):
        log = []

        class Tagger(BaseStage):
            name = "tagger"

            def before(self, request, chain):
                log.append("before")
                return request

            def after(self, response, chain):
                log.append("after")
                return response.model_copy(update={"metadata": {"tagged": True}})

        response = ChatClient(FakeModel(text_response("hi")), stages=[Tagger()]).call(conversation())
        self.assertEqual(log, ["before", "after"])
        self.assertTrue(response.metadata["tagged"])

    def test_sync_tool_loop_over_the_wire(self):
        transport = ScriptedTransport(responses=[
            completion_body(
                None,
                tool_calls=[wire_tool_call("c1", "get_weather", '{"city":"Paris"}')],
                finish_reason="tool_calls",
                usage=usage_dict(10, 5),
            ),
            completion_body("It is sunny.", usage=usage_dict(20, 4)),
        ])
        response = self.openai_client(transport, tools=[weather_tool()]).call(conversation())
        self.assertEqual(response.content, "It is sunny.")
        self.assertEqual(response.usage.total_tokens, 39)
        self.assertEqual(transport.payloads[0]["tools"][0]["function"]["name"], "get_weather")
        self.assertEqual(
            transport.payloads[1]["messages"][-1],
            {"role": "tool", "content": "sunny in Paris", "tool_call_id": "c1"},
        )

    def test_streamed_text_matches_non_streaming_content(self):
        sync_response = self.openai_client(ScriptedTransport(responses=[HELLO_BODY])).call(conversation())

        events = []
        transport = ScriptedTransport(streams=[list(HELLO_FRAMES)], threaded=True)
        stream_response = self.openai_client(transport).stream_to(conversation(), events.append)

        streamed_text = "".join(e.data.get("text", "") for e in events if e.event_type == "token")
        self.assertEqual(streamed_text, sync_response.content)
        self.assertEqual(stream_response.content, sync_response.content)
        self.assertEqual(stream_response.usage, sync_response.usage)

    def test_streaming_tool_loop_reuses_one_assembler_across_rounds(self):
        events = []
        transport = ScriptedTransport(streams=[list(s) for s in WEATHER_STREAMS], threaded=True)
        client = self.openai_client(transport, tools=[weather_tool()])
        response = client.stream_to(conversation(), events.append)

        self.assertEqual(response.content, "It is sunny.")
        usage = response.usage
        self.assertEqual((usage.prompt_tokens, usage.completion_tokens, usage.total_tokens), (30, 9, 39))
        types = [e.event_type for e in events]
        self.assertEqual(types.count("message_start"), 2)
        self.assertEqual(types.count("message_end"), 2)
        self.assertLess(types.index("tool_calls"), types.index("tool_start"))
        self.assertLess(types.index("tool_start"), types.index("tool_end"))
        self.assertEqual([e.sequence for e in events], list(range(1, len(events) + 1)))
        self.assertEqual(
            transport.payloads[1]["messages"][-2]["tool_calls"][0]["function"]["arguments"],
            '{"city":"Paris"}',
        )
        self.assertEqual(transport.payloads[1]["messages"][-1]["content"], "sunny in Paris")

    def test_stream_iterator_ends_with_final_response(self):
        transport = ScriptedTransport(streams=[list(HELLO_FRAMES)], threaded=True)
        request = conversation()
        events = list(self.openai_client(transport).stream(request))
        final = events[-1]
        self.assertEqual(final.event_type, "message_end")
        self.assertEqual(final.data["response"]["generations"][0]["message"]["content"], "Hello, world!")
        self.assertEqual(final.sequence, events[-2].sequence + 1)
        self.assertTrue(all(e.run_id == request.context["run_id"] for e in events))

    def test_stream_iterator_raises_stream_errors(self):
        transport = ScriptedTransport(streams=[["{broken"]])
        seen = []
        with self.assertRaises(StreamParseError):
            for event in self.openai_client(transport).stream(conversation()):
                seen.append(event.event_type)
        self.assertEqual(seen, ["message_start", "error"])

    async def test_acall(self):
        transport = ScriptedTransport(responses=[HELLO_BODY])
        response = await self.openai_client(transport).acall(conversation())
        self.assertEqual(response.content, "Hello, world!")

    async def test_astream(self):
        transport = ScriptedTransport(streams=[list(HELLO_FRAMES)], threaded=True)
        events = [e async for e in self.openai_client(transport).astream(conversation())]
        self.assertEqual(events[0].event_type, "message_start")
        self.assertEqual(events[-1].data["response"]["generations"][0]["message"]["content"], "Hello, world!")

    async def test_acall_entity(self):
        transport = ScriptedTransport(responses=[completion_body('```json\n{"city": "Oslo", "forecast": "rain"}\n```')])
        weather = await self.openai_client(transport).acall_entity(conversation(), CityWeather)
        self.assertEqual(weather.forecast, "rain")
        self.assertEqual(transport.payloads[0]["messages"][-1]["role"], "system")

    @override_settings(CHATFLOW_TRANSPORT="httpx", CHATFLOW_API_BASE="https://llm.test/v1")
    def test_create_chat_client_from_settings(self):
        client = create_chat_client()
        self.assertIsInstance(client.model, OpenAICompatibleChatModel)
        self.assertEqual(client.model.default_model, "gpt-4o-mini")
        self.assertEqual(client.max_tool_iterations, 8)
