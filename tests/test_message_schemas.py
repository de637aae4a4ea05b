import json
import unittest

from pydantic import ValidationError

from app.models.message_schemas import (
    MicrophoneReleaseMessage,
    PermissionRequestMessage,
    PermissionResultMessage,
    SessionOpenMessage,
    SessionStateMessage,
)
from app.models.session import ConnectionConfig, ErrorKind, SessionState, SessionView


class TestMessageSchemas(unittest.TestCase):
    def test_session_open_message(self):
        message = SessionOpenMessage(type="session.open", locator="agent-1", agentName="Ava")
        self.assertEqual(message.locator, "agent-1")
        self.assertEqual(message.agentName, "Ava")

    def test_session_open_without_locator(self):
        message = SessionOpenMessage(type="session.open")
        self.assertIsNone(message.locator)

    def test_wrong_type_is_rejected(self):
        with self.assertRaises(ValidationError):
            SessionOpenMessage(type="session.start", locator="agent-1")

    def test_permission_result_requires_granted(self):
        with self.assertRaises(ValidationError):
            PermissionResultMessage(type="permission.result")

    def test_permission_result_blank_reason(self):
        message = PermissionResultMessage(type="permission.result", granted=False, reason="  ")
        self.assertIsNone(message.reason)

    def test_state_message_from_view(self):
        view = SessionView(
            state=SessionState.ERROR,
            loading=False,
            errorMessage="Conversation link is missing or invalid.",
            errorKind=ErrorKind.CONFIG,
        )
        payload = json.loads(SessionStateMessage.from_view(view, "Ava").model_dump_json())

        self.assertEqual(payload["type"], "session.state")
        self.assertEqual(payload["state"], "error")
        self.assertEqual(payload["loading"], False)
        self.assertEqual(payload["errorKind"], "config")
        self.assertEqual(payload["agentName"], "Ava")

    def test_outgoing_messages_carry_their_type(self):
        self.assertEqual(json.loads(PermissionRequestMessage().model_dump_json())["type"], "permission.request")
        self.assertEqual(json.loads(MicrophoneReleaseMessage().model_dump_json())["type"], "microphone.release")


class TestConnectionConfig(unittest.TestCase):
    def test_blank_fields_are_rejected(self):
        with self.assertRaises(ValidationError):
            ConnectionConfig(targetId="agent-1", credential="")
        with self.assertRaises(ValidationError):
            ConnectionConfig(targetId="  ", credential="key")

    def test_config_is_immutable(self):
        config = ConnectionConfig(targetId="agent-1", credential="key")
        with self.assertRaises(ValidationError):
            config.targetId = "other"


if __name__ == "__main__":
    unittest.main()
