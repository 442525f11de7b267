"""Go source model: lexer, structural parser and unit extraction."""

from gostyle_lint.source.adapter import GoSourceAdapter, SourceModel, adapt
from gostyle_lint.source.units import StructuralUnit, UnitIndex, UnitKind

__all__ = ["GoSourceAdapter", "SourceModel", "StructuralUnit", "UnitIndex", "UnitKind", "adapt"]
