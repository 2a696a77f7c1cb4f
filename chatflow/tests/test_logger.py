"""Tests for chatflow.service.logger: summaries are written and failures never raise."""

from unittest.mock import patch

from django.test import SimpleTestCase

from chatflow.service.logger import log_call, log_error, log_stream
from chatflow.types.messages import Message
from chatflow.types.options import ChatOptions
from chatflow.types.requests import ChatRequest
from chatflow.types.responses import Usage
from chatflow.types.streaming import StreamEvent

from .utils import text_response


def request():
    return ChatRequest(
        messages=[Message.user("hi")],
        options=ChatOptions(model="gpt-4o-mini"),
        context={"run_id": "run-42"},
    )


class LoggerTests(SimpleTestCase):
    def test_log_call_records_usage(self):
        response = text_response("ok", usage=Usage(prompt_tokens=3, completion_tokens=2, total_tokens=5))
        with self.assertLogs("chatflow.service.logger", level="INFO") as cm:
            log_call(request(), response, 12)
        self.assertIn("run_id=run-42", cm.output[0])
        self.assertIn("total_tokens=5", cm.output[0])
        self.assertIn("duration_ms=12", cm.output[0])

    def test_log_stream_counts_events(self):
        events = [
            StreamEvent(event_type="message_start", sequence=1, run_id="run-42"),
            StreamEvent(event_type="tool_calls", sequence=2, run_id="run-42"),
            StreamEvent(event_type="message_end", sequence=3, run_id="run-42"),
        ]
        with self.assertLogs("chatflow.service.logger", level="INFO") as cm:
            log_stream(request(), text_response("ok"), events, 5)
        self.assertIn("events=3", cm.output[0])
        self.assertIn("tool_rounds=1", cm.output[0])

    def test_log_error_records_type(self):
        with self.assertLogs("chatflow.service.logger", level="ERROR") as cm:
            log_error(request(), ValueError("bad"), 7, is_stream=True)
        self.assertIn("chat stream failed", cm.output[0])
        self.assertIn("error_type=ValueError", cm.output[0])

    def test_logging_failures_never_raise(self):
        with patch("chatflow.service.logger.logger.info", side_effect=RuntimeError("disk full")):
            with self.assertLogs("chatflow.service.logger", level="ERROR"):
                log_call(request(), text_response("ok"), 1)
