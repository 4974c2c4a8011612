"""PlanOut script compiler: lexer, parser and AST for experiment definitions."""

from __future__ import annotations

__version__ = "0.1.0"
