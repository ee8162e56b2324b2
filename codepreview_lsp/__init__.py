"""codepreview Language Server integration package.

This package provides:
- A pygls-based Language Server acting as the preview shell: semantic
  highlighting from the classifier, hover, and run/input/stop commands.
- Pure helpers that turn classified spans into LSP semantic token data.

Note: highlighting never executes the buffer; only the run command does.
"""

__all__ = [
    "server",
    "tokens",
]
