"""
Hack VM Toolchain Command-Line Interface
========================================

This package provides command-line tools for the toolchain:

- **vmtranslate**: VM language to Hack assembly translator
- **hackasm**: Hack assembler

Each tool is implemented as a Click-based CLI application with
help text and consistent exit codes.
"""

__all__ = ["vmtranslate", "hackasm"]
