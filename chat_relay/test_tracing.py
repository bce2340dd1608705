import unittest
from unittest.mock import patch

from chat_relay.config import Settings
from chat_relay.tracing import RelayTrace, get_langfuse

TRACED = Settings(
    langfuse_secret_key="sk",
    langfuse_public_key="pk",
    langfuse_host="https://cloud.langfuse.com",
)


class TestTracing(unittest.TestCase):
    def test_disabled_without_keys(self):
        self.assertIsNone(get_langfuse(Settings()))
        trace = RelayTrace(Settings(), "Hello")
        self.assertFalse(trace.enabled)
        trace.succeed("ignored")

    @patch("chat_relay.tracing.Langfuse")
    def test_client_built_from_settings(self, langfuse_cls):
        get_langfuse(TRACED)
        langfuse_cls.assert_called_once_with(
            secret_key="sk", public_key="pk", host="https://cloud.langfuse.com"
        )

    @patch("chat_relay.tracing.Langfuse")
    def test_failure_marks_span_as_error(self, langfuse_cls):
        langfuse = langfuse_cls.return_value
        trace = RelayTrace(TRACED, "Hello")

        trace.fail(RuntimeError("Gemini API error: 500"))

        span = langfuse.trace.return_value.span.return_value
        span.end.assert_called_once_with(
            output={"error": "Gemini API error: 500"},
            level="ERROR",
            status_message="Gemini API error: 500",
        )
        langfuse.shutdown.assert_called_once()

    @patch("chat_relay.tracing.Langfuse")
    def test_shutdown_errors_are_contained(self, langfuse_cls):
        langfuse_cls.return_value.shutdown.side_effect = ConnectionError("offline")
        trace = RelayTrace(TRACED, "Hello")

        with self.assertLogs("chat_relay.tracing", level="WARNING"):
            trace.succeed("Hi there!")


    @patch("chat_relay.tracing.Langfuse")
    def test_client_shut_down_after_success(self, langfuse_cls):
        trace = RelayTrace(TRACED, "Hello")
        trace.succeed("Hi there!")

        langfuse_cls.return_value.shutdown.assert_called_once()
        self.assertIsNone(trace.langfuse)

    @patch("chat_relay.tracing.Langfuse")
    def test_client_shut_down_when_recording_fails(self, langfuse_cls):
        langfuse = langfuse_cls.return_value
        langfuse.trace.return_value.span.return_value.end.side_effect = RuntimeError("bad span")
        trace = RelayTrace(TRACED, "Hello")

        with self.assertLogs("chat_relay.tracing", level="WARNING"):
            trace.fail(RuntimeError("Gemini API error: 500"))
        langfuse.shutdown.assert_called_once()

    @patch("chat_relay.tracing.Langfuse")
    def test_client_shut_down_when_trace_cannot_start(self, langfuse_cls):
        langfuse = langfuse_cls.return_value
        langfuse.trace.side_effect = RuntimeError("langfuse down")

        with self.assertLogs("chat_relay.tracing", level="WARNING"):
            trace = RelayTrace(TRACED, "Hello")
        self.assertFalse(trace.enabled)
        langfuse.shutdown.assert_called_once()

        trace.succeed("ignored")
        langfuse.shutdown.assert_called_once()


if __name__ == "__main__":
    unittest.main()
