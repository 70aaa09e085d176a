"""
Configuration for the code generator pipeline.

Holds the options passed from the command line (or a JSON config file)
through to the emitters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class OutputMode(str, Enum):
    """Output mode for file generation.

    Controls behavior when an output file already exists.
    """

    ERROR_IF_EXISTS = "error"  # Default: raise error if file exists
    FORCE = "force"  # Overwrite


@dataclass
class OutputConfig:
    """Configuration for output file handling.

    Attributes:
        mode: How to handle existing output files
        atomic_write: Whether to use atomic file writes
        keep_partial: Write the artifacts that rendered when another one failed
    """

    mode: OutputMode = OutputMode.ERROR_IF_EXISTS
    atomic_write: bool = True
    keep_partial: bool = False


@dataclass
class FormatterConfig:
    """Configuration for post-processing formatters."""

    # Whether formatting is enabled
    enabled: bool = False

    # Command used to format ReScript code read from stdin
    command: list[str] = field(default_factory=lambda: ["rescript", "format", "-stdin", ".res"])

    # Seconds before the formatter is abandoned
    timeout: int = 30


@dataclass
class CodeGeneratorConfig:
    """Configuration options for code generation."""

    # Prefix for generated module names (ApiTypes, ApiSchema, ApiClient)
    module_prefix: str = "Api"

    # Emit default/example values and example calls as comments
    include_scaffolding: bool = False

    # Generate the validator module
    generate_schema: bool = True

    # Generate the HTTP client module
    generate_client: bool = True

    # Add generation comment at top of each file
    add_generation_comment: bool = True

    # Base URL baked into the generated client (empty = first server url)
    default_base_url: str = ""

    formatter: FormatterConfig = field(default_factory=FormatterConfig)

    output: OutputConfig = field(default_factory=OutputConfig)

    @property
    def types_module(self) -> str:
        return f"{self.module_prefix}Types"

    @property
    def schema_module(self) -> str:
        return f"{self.module_prefix}Schema"

    @property
    def client_module(self) -> str:
        return f"{self.module_prefix}Client"

    @staticmethod
    def from_dict(d: dict) -> CodeGeneratorConfig:
        """Create a config from a dictionary."""
        config = CodeGeneratorConfig()
        for k, v in d.items():
            if k == "formatter" and isinstance(v, dict):
                config.formatter = FormatterConfig(**v)
            elif k == "output" and isinstance(v, dict):
                mode = v.get("mode", OutputMode.ERROR_IF_EXISTS)
                if isinstance(mode, str):
                    mode = OutputMode(mode)
                config.output = OutputConfig(
                    mode=mode,
                    atomic_write=v.get("atomic_write", True),
                    keep_partial=v.get("keep_partial", False),
                )
            elif hasattr(config, k):
                setattr(config, k, v)
        return config

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        return {
            "module_prefix": self.module_prefix,
            "include_scaffolding": self.include_scaffolding,
            "generate_schema": self.generate_schema,
            "generate_client": self.generate_client,
            "add_generation_comment": self.add_generation_comment,
            "default_base_url": self.default_base_url,
            "formatter": {
                "enabled": self.formatter.enabled,
                "command": list(self.formatter.command),
                "timeout": self.formatter.timeout,
            },
            "output": {
                "mode": self.output.mode.value,
                "atomic_write": self.output.atomic_write,
                "keep_partial": self.output.keep_partial,
            },
        }
