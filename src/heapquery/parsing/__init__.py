"""Parsing helpers for SQL scripts."""

from heapquery.parsing.sql_lexer import SqlLexer, is_complete, split_statements

__all__ = [
    "SqlLexer",
    "is_complete",
    "split_statements",
]
