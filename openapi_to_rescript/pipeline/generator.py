"""
Pipeline generator - the orchestrator.

Runs the phases in order:

1. Phase 1 (Document): Parse the decoded OpenAPI mapping into the document model
2. Phase 2 (Analyzer): Resolve references and build IR
3. Phase 3 (Ordering): Group and order declarations by dependency
4. Phase 4 (Backends): Render the Types, Schema and Client modules
5. Phase 5 (Formatter): Optional post-processing with `rescript format`
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .analyzer import IR, DeclarationGroup, DependencyResolver, SchemaAnalyzer
from .backends import ClientBackend, CodeBackend, SchemaBackend, TypesBackend
from .config import CodeGeneratorConfig, OutputMode
from .document import Document, DocumentParser
from .errors import GenerationError, OutputError
from .formatters import RescriptFormatter
from .output import AtomicWriter, validate_brackets

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    """Rendered modules of one run.

    Attributes:
        files: File name -> generated text, for the modules that rendered
        errors: File name -> error, for the modules that failed
        ir: The IR the modules were rendered from
        groups: Declaration groups in emission order
    """

    files: dict[str, str] = field(default_factory=dict)
    errors: dict[str, GenerationError] = field(default_factory=dict)
    ir: IR | None = None
    groups: list[DeclarationGroup] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class PipelineGenerator:
    """Generates ReScript modules from an OpenAPI document."""

    def __init__(
        self,
        document: dict[str, Any],
        config: CodeGeneratorConfig | None = None,
        generation_comment: str | None = None,
    ):
        """
        Initialize the generator.

        Args:
            document: The decoded OpenAPI document
            config: Code generation configuration
            generation_comment: Comment placed at the top of every module
        """
        self.raw_document = document
        self.config = config or CodeGeneratorConfig()
        self.generation_comment = generation_comment
        self.document: Document | None = None

    def backends(self) -> list[CodeBackend]:
        """Backends enabled by the configuration, in output order."""
        backends: list[CodeBackend] = [TypesBackend(self.config)]
        if self.config.generate_schema:
            backends.append(SchemaBackend(self.config))
        if self.config.generate_client:
            if self.config.generate_schema:
                backends.append(ClientBackend(self.config))
            else:
                logger.warning("The client decodes responses with %s; skipping it", self.config.schema_module)
        return backends

    def build_ir(self) -> tuple[IR, list[DeclarationGroup]]:
        """
        Run the core phases.

        Returns:
            The IR and its declaration groups in emission order

        Raises:
            GenerationError: From any phase; nothing is returned on failure
        """
        self.document = DocumentParser().parse(self.raw_document)
        logger.info(
            "Parsed '%s': %d schemas, %d operations",
            self.document.title,
            len(self.document.schemas),
            len(self.document.operations),
        )
        ir = SchemaAnalyzer(self.config).analyze(self.document)
        groups = DependencyResolver(ir).resolve()
        return ir, groups

    def generate(self) -> GenerationResult:
        """
        Generate every enabled module.

        Returns:
            GenerationResult with one entry per module, in files or errors

        Raises:
            GenerationError: If a core phase fails
        """
        ir, groups = self.build_ir()
        result = GenerationResult(ir=ir, groups=groups)

        formatter = RescriptFormatter() if self.config.formatter.enabled else None
        for backend in self.backends():
            try:
                code = backend.generate(ir, groups, self.generation_comment)
            except GenerationError as e:
                logger.error("Failed to generate %s: %s", backend.file_name, e)
                result.errors[backend.file_name] = e
                continue
            if formatter is not None:
                code = formatter.format(code, self.config.formatter)
            result.files[backend.file_name] = code
        return result

    def write(self, output_dir: Path, result: GenerationResult | None = None) -> list[Path]:
        """
        Generate (unless given a result) and write the modules.

        Args:
            output_dir: Directory receiving the .res files
            result: A result from generate(), to avoid rendering twice

        Returns:
            Paths written

        Raises:
            GenerationError: If a core phase fails, or a module failed and
                partial output is not allowed
            FileExistsError: If a module exists and the mode is not FORCE
        """
        if result is None:
            result = self.generate()
        if result.errors and not self.config.output.keep_partial:
            first = next(iter(result.errors.values()))
            raise first

        if self.config.output.mode != OutputMode.FORCE:
            for file_name in result.files:
                if (output_dir / file_name).exists():
                    raise FileExistsError(f"Output file already exists: {output_dir / file_name}. Use --force to overwrite.")

        writer = AtomicWriter()
        written = []
        for file_name, code in result.files.items():
            path = output_dir / file_name
            try:
                if self.config.output.atomic_write:
                    writer.write(path, code)
                else:
                    validate_brackets(code)
                    path.parent.mkdir(parents=True, exist_ok=True)
                    path.write_text(code, encoding="utf-8")
            except OSError as e:
                raise OutputError(f"Cannot write {file_name}: {e}", str(path)) from e
            written.append(path)
        logger.info("Wrote %d modules to %s", len(written), output_dir)
        return written
