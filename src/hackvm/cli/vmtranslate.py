"""
vmtranslate - VM Translator Command-Line Interface
==================================================

Translates VM-language programs into Hack assembly.

Usage Examples
--------------
Single file (no bootstrap code):
    $ vmtranslate SimpleAdd.vm

Directory (all .vm files, lexical order, with bootstrap code):
    $ vmtranslate FibonacciElement/

Explicit output and bootstrap control:
    $ vmtranslate Main.vm -o out.asm --bootstrap

Verbose mode:
    $ vmtranslate -v StaticsTest/
"""

from pathlib import Path
from typing import Optional

import click

from hackvm import __version__
from hackvm.cli.errors import configure_logging, handle_cli_exception
from hackvm.translator import TranslatorOptions, VMTranslator


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_path",
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output assembly file (default: input.asm, or DIR/DIR.asm for a directory)",
)
@click.option(
    "--bootstrap/--no-bootstrap",
    default=None,
    help="Emit SP=256 and call Sys.init first. "
         "Default: on for directories, off for single files.",
)
@click.option(
    "--comments/--no-comments",
    default=None,
    help="Write each VM command as a comment above its code. Default: on.",
)
@click.option(
    "-e", "--entry",
    default=None,
    help="Function called by the bootstrap code (default: Sys.init)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="vmtranslate")
def main(
    input_path: Path,
    output: Optional[Path],
    bootstrap: Optional[bool],
    comments: Optional[bool],
    entry: Optional[str],
    verbose: bool,
) -> None:
    """
    Translate VM code into Hack assembly.

    INPUT_PATH is a .vm file or a directory containing .vm files.
    A directory is translated into a single program; its files are
    processed in lexical order.

    \b
    Examples:
        vmtranslate SimpleAdd.vm           # Outputs SimpleAdd.asm
        vmtranslate FibonacciElement/      # Outputs FibonacciElement/FibonacciElement.asm
        vmtranslate Main.vm -o prog.asm    # Specify output file
        vmtranslate --no-comments Foo.vm   # Compact output
    """
    configure_logging(verbose)

    # Environment supplies defaults; command-line flags take precedence
    options = TranslatorOptions.from_env()
    if bootstrap is not None:
        options.bootstrap = bootstrap
    if comments is not None:
        options.emit_comments = comments
    if entry:
        options.entry_function = entry

    try:
        translator = VMTranslator(options)

        if verbose:
            sources = translator.discover_sources(input_path)
            click.echo(f"Translating {len(sources)} module(s) from {input_path}:")
            for source in sources:
                click.echo(f"  - {source.name}")

        result = translator.translate_to_file(input_path, output)

        if verbose:
            state = "with" if result.bootstrapped else "without"
            click.echo(f"Translated {result.instruction_count} commands {state} bootstrap code")
            click.echo(f"Wrote {result.line_count} lines")

        click.echo(f"Translated {input_path} -> {result.output_path}")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Translation")


if __name__ == "__main__":
    main()
