"""Closed enumeration of the platforms a runtime build can target."""
from __future__ import annotations

import platform as _platform
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from constants import Constants


class Os(Enum):
    """Operating systems with published runtime builds."""

    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"

    @classmethod
    def current(cls) -> "Os":
        if sys.platform == "win32":
            return cls.WINDOWS
        if sys.platform == "darwin":
            return cls.MACOS
        return cls.LINUX

    @classmethod
    def parse(cls, name: str) -> Optional["Os"]:
        """Map a catalog spelling (``ubuntu-22.04``, ``macos-latest``...) to an Os."""
        return _OS_ALIASES.get((name or "").strip().lower())

    def binary_name(self) -> str:
        if self is Os.WINDOWS:
            return f"{Constants.RUNTIME_BINARY_NAME}.exe"
        return Constants.RUNTIME_BINARY_NAME


class Arch(Enum):
    """CPU architectures with published runtime builds."""

    X86_64 = "x86_64"
    AARCH64 = "aarch64"

    @classmethod
    def current(cls) -> "Arch":
        arch = cls.parse(_platform.machine())
        return arch or cls.X86_64

    @classmethod
    def parse(cls, name: str) -> Optional["Arch"]:
        return _ARCH_ALIASES.get((name or "").strip().lower())


_OS_ALIASES = {
    "linux": Os.LINUX,
    "ubuntu": Os.LINUX,
    "ubuntu-latest": Os.LINUX,
    "ubuntu-22.04": Os.LINUX,
    "ubuntu-20.04": Os.LINUX,
    "macos": Os.MACOS,
    "macos-latest": Os.MACOS,
    "darwin": Os.MACOS,
    "osx": Os.MACOS,
    "windows": Os.WINDOWS,
    "windows-latest": Os.WINDOWS,
    "win32": Os.WINDOWS,
    "win64": Os.WINDOWS,
}

_ARCH_ALIASES = {
    "x86_64": Arch.X86_64,
    "amd64": Arch.X86_64,
    "x64": Arch.X86_64,
    "aarch64": Arch.AARCH64,
    "arm64": Arch.AARCH64,
}


@dataclass(frozen=True)
class Target:
    """An (os, arch) pair; the key into a catalog entry's build map."""

    os: Os
    arch: Arch

    @classmethod
    def current(cls) -> "Target":
        return cls(Os.current(), Arch.current())

    @property
    def binary_name(self) -> str:
        return self.os.binary_name()

    def __str__(self) -> str:
        return f"{self.os.value}-{self.arch.value}"
