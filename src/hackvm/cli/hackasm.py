"""
hackasm - Hack Assembler Command-Line Interface
===============================================

Assembles Hack assembly into ``.hack`` machine code (one 16-bit binary
word per line).

Usage Examples
--------------
Basic assembly:
    $ hackasm Prog.asm

With output and symbol files:
    $ hackasm Prog.asm -o Prog.hack -s Prog.sym
"""

from pathlib import Path
from typing import Optional

import click

from hackvm import __version__
from hackvm.assembler import HackAssembler
from hackvm.cli.errors import configure_logging, handle_cli_exception


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output machine code file (default: input.hack)",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate symbol file (labels and variables with addresses)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="hackasm")
def main(
    input_file: Path,
    output: Optional[Path],
    symbols: Optional[Path],
    verbose: bool,
) -> None:
    """
    Assemble Hack assembly into machine code.

    INPUT_FILE is the assembly source file (.asm) to assemble.

    \b
    Examples:
        hackasm Prog.asm                # Outputs Prog.hack
        hackasm Prog.asm -o out.hack    # Specify output file
        hackasm Prog.asm -s Prog.sym    # Also write the symbol table
    """
    configure_logging(verbose)

    output_file = output if output is not None else input_file.with_suffix(".hack")

    try:
        if verbose:
            click.echo(f"Assembling {input_file}...")

        result = HackAssembler().assemble_file(input_file)
        output_file.write_text(result.to_hack_text(), encoding="utf-8")

        if symbols:
            lines = [
                f"{name} {address}"
                for name, address in sorted(result.symbols.items(), key=lambda kv: (kv[1], kv[0]))
            ]
            symbols.write_text("\n".join(lines) + "\n", encoding="utf-8")
            if verbose:
                click.echo(f"Wrote symbols to {symbols}")

        if verbose:
            click.echo(
                f"Assembly complete: {len(result.words)} words, "
                f"{len(result.labels)} labels, {len(result.variables)} variables"
            )

        click.echo(f"Assembled {input_file} -> {output_file}")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")


if __name__ == "__main__":
    main()
