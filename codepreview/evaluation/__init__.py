"""Pseudo-execution: expression evaluation and the line-oriented statement scanner."""
