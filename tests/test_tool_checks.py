"""Tests for tool_checks module."""

import unittest
from unittest.mock import patch

from protogen.tool_checks import (
    PROTOC_TOOL,
    ToolInfo,
    check_all_tools,
    check_tool,
    check_tool_available,
    get_tool_install_message,
    log_tool_status,
)


class TestCheckToolAvailable(unittest.TestCase):
    """Tests for check_tool_available function."""

    @patch("protogen.tool_checks.shutil.which")
    def test_tool_available(self, mock_which):
        mock_which.return_value = "/usr/bin/protoc"
        available, path = check_tool_available("protoc")
        self.assertTrue(available)
        self.assertEqual(path, "/usr/bin/protoc")
        mock_which.assert_called_once_with("protoc")

    @patch("protogen.tool_checks.shutil.which")
    def test_tool_not_available(self, mock_which):
        mock_which.return_value = None
        available, path = check_tool_available("protoc-gen-missing")
        self.assertFalse(available)
        self.assertIsNone(path)


class TestCheckTools(unittest.TestCase):
    """Tests for check_tool and check_all_tools."""

    @patch("protogen.tool_checks.shutil.which")
    def test_check_tool_attaches_info(self, mock_which):
        mock_which.return_value = "/opt/homebrew/bin/protoc"
        status = check_tool(PROTOC_TOOL)
        self.assertTrue(status.available)
        self.assertIs(status.info, PROTOC_TOOL)

    @patch("protogen.tool_checks.shutil.which")
    def test_check_all_tools_includes_extra_commands(self, mock_which):
        mock_which.side_effect = lambda cmd: "/usr/bin/protoc" if cmd == "protoc" else None
        statuses = check_all_tools(["protoc-gen-grpc"])
        self.assertEqual(list(statuses), ["protoc", "protoc-gen-grpc"])
        self.assertTrue(statuses["protoc"].available)
        self.assertFalse(statuses["protoc-gen-grpc"].available)

    @patch("protogen.tool_checks.shutil.which", return_value=None)
    def test_log_tool_status_reports_missing(self, mock_which):
        with self.assertLogs("protogen", level="WARNING") as logs:
            log_tool_status(["protoc-gen-grpc"])
        self.assertTrue(any("protoc-gen-grpc" in message for message in logs.output))


class TestInstallMessage(unittest.TestCase):
    """Tests for get_tool_install_message."""

    def test_protoc_message(self):
        message = get_tool_install_message()
        self.assertIn("protoc", message)
        self.assertIn("brew install protobuf", message)
        self.assertIn(PROTOC_TOOL.homepage, message)

    def test_custom_tool(self):
        info = ToolInfo(
            name="grpc plugin",
            command="protoc-gen-grpc",
            description="gRPC code generator",
            install_instructions="Download from the release page",
            homepage="https://grpc.io",
        )
        message = get_tool_install_message(info)
        self.assertTrue(message.startswith("grpc plugin (https://grpc.io)"))
        self.assertIn("  Download from the release page", message)


if __name__ == "__main__":
    unittest.main()
