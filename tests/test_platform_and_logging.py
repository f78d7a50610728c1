"""Tests for platform detection and logging helpers."""

import logging
import time

import pytest
from unittest.mock import patch

from common.logging_utils import Timer, configure_logging, extra_context, redact, safe_url
from common.platform import Arch, Os, Target


class TestPlatform:
    """Catalog spellings and the current target."""

    @pytest.mark.parametrize("name,expected", [
        ("ubuntu-22.04", Os.LINUX),
        ("macos-latest", Os.MACOS),
        ("Windows-Latest", Os.WINDOWS),
        ("solaris", None),
        ("", None),
    ])
    def test_os_aliases(self, name, expected):
        assert Os.parse(name) is expected

    @pytest.mark.parametrize("name,expected", [("AMD64", Arch.X86_64), ("arm64", Arch.AARCH64), ("mips", None)])
    def test_arch_aliases(self, name, expected):
        assert Arch.parse(name) is expected

    def test_binary_names(self):
        assert Target(Os.WINDOWS, Arch.X86_64).binary_name == "ambient.exe"
        assert Target(Os.MACOS, Arch.AARCH64).binary_name == "ambient"

    def test_target_str(self):
        assert str(Target(Os.LINUX, Arch.AARCH64)) == "linux-aarch64"

    @patch("common.platform.sys.platform", "darwin")
    @patch("common.platform._platform.machine", return_value="arm64")
    def test_current(self, _machine):
        assert Target.current() == Target(Os.MACOS, Arch.AARCH64)

    @patch("common.platform._platform.machine", return_value="riscv64")
    def test_unknown_machine_defaults_to_x86_64(self, _machine):
        assert Arch.current() is Arch.X86_64


class TestLoggingUtils:
    """Structured logging helpers."""

    def test_extra_context_drops_none(self):
        assert extra_context(event="x", target=None, status_code=200) == {"event": "x", "status_code": 200}

    def test_redact(self):
        assert redact("abc") == "***"
        assert redact("supersecret") == "supe***"

    def test_safe_url(self):
        cleaned = safe_url("https://me:pw@host.invalid/o?prefix=a&access_token=abcdef123")
        assert cleaned == "https://host.invalid/o?prefix=a&access_token=abcd***"

    def test_timer(self):
        with Timer() as timer:
            time.sleep(0.01)
        assert timer.duration_ms() >= 5

    def test_configure_logging_file(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        logfile = tmp_path / "ambient.log"
        try:
            configure_logging("info", str(logfile))
            logging.getLogger("runtime.test").info("hello")
            for handler in root.handlers:
                handler.flush()
            assert root.level == logging.INFO
            assert "[INFO] hello" in logfile.read_text()
        finally:
            for handler in list(root.handlers):
                handler.close()
                root.removeHandler(handler)
            for handler in saved_handlers:
                root.addHandler(handler)
            root.setLevel(saved_level)
