import json
import logging
from pathlib import Path

import click

from . import __version__
from .cli_utils import reconstruct_command_line
from .pipeline import CodeGeneratorConfig, GenerationError, OutputMode, PipelineGenerator
from .pipeline.diagnostics import Diagnostic, validate_document
from .pipeline.document import DocumentParser, load_document_file

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _load(path: Path) -> dict:
    try:
        return load_document_file(path)
    except GenerationError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(__version__, prog_name="openapi_to_rescript")
@click.option("--log-level", default="WARNING", type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Logging verbosity.")
def openapi_to_rescript(log_level):
    """Generate type-safe ReScript clients from OpenAPI specifications."""
    logging.basicConfig(level=getattr(logging, log_level.upper()), format="%(levelname)s %(name)s: %(message)s")


@openapi_to_rescript.command()
@click.argument("input_path", metavar="INPUT", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", default=Path("src/api"), type=click.Path(file_okay=False, path_type=Path), help="Output directory for generated code.")
@click.option("--module", "-m", "module_prefix", default=None, type=str, help="Module name prefix (default: Api).")
@click.option("--with-schema/--no-schema", "with_schema", default=None, help="Generate rescript-schema validators.")
@click.option("--with-client/--no-client", "with_client", default=None, help="Generate HTTP client functions.")
@click.option("--scaffolding", is_flag=True, default=False, help="Emit defaults, examples and example calls as comments.")
@click.option("--base-url", default=None, type=str, help="Base URL baked into the client (default: first server).")
@click.option("--config", "-c", "config_path", default=None, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--force", is_flag=True, default=False, help="Overwrite existing files.")
@click.option("--format", "format_code", is_flag=True, default=False, help="Run `rescript format` on the output.")
@click.option("--keep-partial", is_flag=True, default=False, help="Write the modules that rendered when another failed.")
@click.option("--dry-run", is_flag=True, default=False, help="Print what would be written.")
def generate(
    input_path,
    output,
    module_prefix,
    with_schema,
    with_client,
    scaffolding,
    base_url,
    config_path,
    force,
    format_code,
    keep_partial,
    dry_run,
):
    """Generate ReScript code from an OpenAPI specification."""
    if config_path is not None:
        with open(config_path) as f:
            config = CodeGeneratorConfig.from_dict(json.load(f))
    else:
        config = CodeGeneratorConfig()

    # CLI flags override the config file when given
    if module_prefix is not None:
        config.module_prefix = module_prefix
    if with_schema is not None:
        config.generate_schema = with_schema
    if with_client is not None:
        config.generate_client = with_client
    if scaffolding:
        config.include_scaffolding = True
    if base_url is not None:
        config.default_base_url = base_url
    if force:
        config.output.mode = OutputMode.FORCE
    if format_code:
        config.formatter.enabled = True
    if keep_partial:
        config.output.keep_partial = True

    document = _load(input_path)
    generator = PipelineGenerator(document, config, reconstruct_command_line(click.get_current_context().command))

    try:
        result = generator.generate()
        for file_name, error in result.errors.items():
            click.secho(f"Failed to generate {file_name}: {error}", fg="red", err=True)

        if dry_run:
            for file_name, code in result.files.items():
                click.echo(f"{output / file_name} ({len(code.encode('utf-8'))} bytes)")
            if not result.ok:
                raise click.ClickException("Some modules failed to render")
            return

        written = generator.write(output, result)
    except GenerationError as e:
        raise click.ClickException(str(e)) from e
    except FileExistsError as e:
        raise click.ClickException(str(e)) from e

    for path in written:
        click.echo(f"  Created {path}")
    click.secho(f"✓ Generated ReScript code in {output}", fg="green")
    if not result.ok:
        raise click.ClickException("Some modules failed to render")


@openapi_to_rescript.command()
@click.argument("input_path", metavar="INPUT", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate(input_path):
    """Validate an OpenAPI specification."""
    document = _load(input_path)

    diagnostics: list[Diagnostic] = []
    try:
        generator = PipelineGenerator(document)
        generator.build_ir()
        diagnostics.extend(validate_document(generator.document))
    except GenerationError as e:
        diagnostics.append(Diagnostic.from_error(e))

    if not diagnostics:
        click.secho("✓ OpenAPI spec is valid", fg="green")
        return

    for diagnostic in diagnostics:
        click.secho(f"⚠ {diagnostic}", fg="yellow", err=True)
    click.get_current_context().exit(1)


@openapi_to_rescript.command()
@click.argument("input_path", metavar="INPUT", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def info(input_path):
    """Print information about an OpenAPI specification."""
    raw = _load(input_path)
    try:
        document = DocumentParser().parse(raw)
    except GenerationError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Title: {document.title}")
    click.echo(f"Version: {document.version}")
    if document.description:
        click.echo(f"Description: {document.description}")
    click.echo(f"Paths: {len(raw.get('paths') or {})}")
    click.echo(f"Operations: {len(document.operations)}")
    click.echo(f"Schemas: {len(document.schemas)}")
