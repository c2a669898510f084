"""Configuration — Pydantic models for perlrepl settings."""

from __future__ import annotations

import json
import os
import shlex
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Start of line, anything but "$" or newline, then "$ " (lookahead is the
# zero-width marker that anchors the prompt terminator).
DEFAULT_PROMPT_PATTERN = r"^[^$\n]*(?=\$ )\$ "


class ScannerConfig(BaseModel):
    """Expression boundary scanner configuration."""

    terminator: str = Field(
        default=";",
        min_length=1,
        max_length=1,
        description="Statement separator character",
    )
    sigils: str = Field(
        default="$@%",
        description="Variable sigils skipped while scanning for boundaries",
    )


class ReplConfig(BaseModel):
    """Top-level perlrepl configuration.

    Resolved when a session is opened; changing it afterwards only affects
    the next spawn.
    """

    executable: str = Field(default="re.pl", description="Interpreter to spawn")
    args: list[str] = Field(default_factory=list)
    prompt_pattern: str = Field(default=DEFAULT_PROMPT_PATTERN)
    session_name: str = Field(default="perl-repl")
    cwd: str | None = Field(default=None, description="Working directory")
    env: dict[str, str] = Field(default_factory=dict)
    max_log_lines: int = Field(default=10_000, gt=0)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)

    @property
    def command(self) -> list[str]:
        return [self.executable, *self.args]

    @classmethod
    def load(cls, config_path: str | None = None) -> ReplConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            PERLREPL_EXECUTABLE  - Interpreter binary (default ``re.pl``)
            PERLREPL_ARGS        - Arguments, split with shell quoting rules
            PERLREPL_PROMPT      - Prompt-detection regex
            PERLREPL_SESSION     - Session name
        """
        load_dotenv(override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        env_executable = os.environ.get("PERLREPL_EXECUTABLE")
        if env_executable:
            config_data["executable"] = env_executable

        env_args = os.environ.get("PERLREPL_ARGS")
        if env_args is not None:
            config_data["args"] = shlex.split(env_args)

        env_prompt = os.environ.get("PERLREPL_PROMPT")
        if env_prompt:
            config_data["prompt_pattern"] = env_prompt

        env_session = os.environ.get("PERLREPL_SESSION")
        if env_session:
            config_data["session_name"] = env_session

        return cls.model_validate(config_data)
