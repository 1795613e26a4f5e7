"""Parsers for point-of-sale export files."""

from .sheet_parser import SheetParser, SheetRow

__all__ = ["SheetParser", "SheetRow"]
