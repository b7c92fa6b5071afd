"""
Provides `SessionConfig`, the user-facing configuration of a Kaleido session.

Classes:
    - SessionConfig: Output stage, prompts, quit commands, and the
      operator precedence table.
    - ConfigError: Raised when a configuration is unreadable or invalid.

Features:
    - Defaults that match the interactive front end (`> ` / `. ` prompts, `.quit`)
    - Loads overrides from a JSON file or a plain dict
    - Validates every field and reports all problems at once
    - Builds the immutable `ParserSettings` used by the parser

Usage:
    >>> cfg = SessionConfig.from_dict({"stage": "ast", "precedence": {"SHIFT": 5}})
    >>> cfg.parser_settings().precedence["SHIFT"]
    5

Example JSON structure:
    {
        "stage": "tokens",
        "prompt": "kal> ",
        "continuation_prompt": "...  ",
        "quit_commands": [".quit", ".exit"],
        "precedence": {"MUL": 40, "DIV": 40, "ADD": 20, "SUB": 20}
    }

Note:
    A precedence table replaces the default one entirely, so an operator left out
    of it is reported by the parser as unknown.
"""

import json
from collections.abc import Mapping
from typing import Any

from kaleido.kaleido_constants import (
    BINARY_OPS,
    DEFAULT_PRECEDENCE,
    QUIT_COMMANDS,
    STAGES,
)
from kaleido.kaleido_parser import ParserSettings


class ConfigError(Exception):
    """Raised when a Kaleido session configuration is invalid.

    Attributes:
        problems (list[str]): One description per invalid entry.

    Example:
        raise ConfigError("Invalid configuration", ["unknown stage 'x'"])
    """

    def __init__(self, message: str, problems: list[str] | None = None):
        super().__init__(message)
        self.problems = problems or []



class SessionConfig:
    """Settings read by the session driver and the CLI.

    Attributes:
        stage (str): Output stage to display: "tokens", "ast" or "asm".
        prompt (str): Prompt shown when no construct is pending.
        continuation_prompt (str): Prompt shown while a construct is pending.
        quit_commands (tuple[str, ...]): Lines that end the session.
        precedence (dict[str, int]): Canonical operator name to binding strength.
    """

    def __init__(
        self,
        stage: str = "asm",
        prompt: str = "> ",
        continuation_prompt: str = ". ",
        quit_commands: tuple[str, ...] = QUIT_COMMANDS,
        precedence: Mapping[str, int] | None = None,
    ) -> None:
        self.stage = stage
        self.prompt = prompt
        self.continuation_prompt = continuation_prompt
        # anything but a list or tuple is left as given and rejected by validate()
        self.quit_commands = (
            tuple(quit_commands)
            if isinstance(quit_commands, (list, tuple))
            else quit_commands
        )
        self.precedence: dict[str, int] = dict(
            DEFAULT_PRECEDENCE if precedence is None else precedence
        )
        self.validate()

    def __repr__(self) -> str:
        return f"SessionConfig(stage={self.stage!r}, precedence={self.precedence!r})"

    def validate(self) -> None:
        """Checks every field.

        Precedence values must be non-negative integers, since expression parsing
        starts climbing from zero.

        Raises:
            ConfigError: Listing each problem found.
        """
        problems: list[str] = []

        if self.stage not in STAGES:
            problems.append(f"unknown stage {self.stage!r} (expected one of {STAGES})")
        for name in ("prompt", "continuation_prompt"):
            value = getattr(self, name)
            if not isinstance(value, str):
                problems.append(f"{name} must be a string, got {value!r}")

        if not isinstance(self.quit_commands, tuple):
            problems.append(
                f"quit_commands must be a list of strings, got {self.quit_commands!r}"
            )
        elif not self.quit_commands:
            problems.append("at least one quit command is required")
        else:
            for cmd in self.quit_commands:
                if not isinstance(cmd, str):
                    problems.append(f"quit command {cmd!r} is not a string")

        for op, prec in self.precedence.items():
            if op not in BINARY_OPS:
                problems.append(f"unknown operator name {op!r} in precedence table")
            elif isinstance(prec, bool) or not isinstance(prec, int):
                problems.append(f"precedence for {op} must be an integer, got {prec!r}")
            elif prec < 0:
                problems.append(f"precedence for {op} must be >= 0, got {prec}")

        if problems:
            raise ConfigError("Invalid session configuration", problems)

    def parser_settings(self) -> ParserSettings:
        return ParserSettings(self.precedence)

    def with_overrides(self, **overrides: Any) -> "SessionConfig":
        """Returns a copy with the non-None `overrides` applied."""
        values: dict[str, Any] = {
            "stage": self.stage,
            "prompt": self.prompt,
            "continuation_prompt": self.continuation_prompt,
            "quit_commands": self.quit_commands,
            "precedence": self.precedence,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return SessionConfig(**values)

    @classmethod
    def from_dict(cls, raw: Any) -> "SessionConfig":
        """
        Builds a configuration from a decoded JSON object.

        Args:
            raw: Mapping of field names to values. Missing fields keep their defaults.
                A single string is accepted for `quit_commands`.

        Raises:
            ConfigError: If `raw` is not a mapping, has unknown keys, or holds invalid values.
        """
        if not isinstance(raw, dict):
            raise ConfigError("Configuration must be a JSON object")

        known = {"stage", "prompt", "continuation_prompt", "quit_commands", "precedence"}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ConfigError(
                "Unknown configuration key(s)", [f"unknown key {k!r}" for k in unknown]
            )

        values = dict(raw)
        if isinstance(values.get("quit_commands"), str):
            values["quit_commands"] = (values["quit_commands"],)
        if "precedence" in values and not isinstance(values["precedence"], dict):
            raise ConfigError("'precedence' must be a JSON object")
        return cls(**values)

    @classmethod
    def load_from_json(cls, path: str) -> "SessionConfig":
        """
        Loads a configuration file.

        Raises:
            ConfigError: If the file cannot be read or decoded, or the configuration is invalid.
        """
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to load config file: {e}") from e
        return cls.from_dict(raw)


__all__ = ["ConfigError", "SessionConfig"]
