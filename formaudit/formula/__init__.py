"""Formula loading, extraction and audit rules."""

from .loader import Formula, load_formula, snapshot_fields
from .parser import ScriptText, extract_declarations
from .rules import FormulaAuditor

__all__ = [
    "Formula",
    "load_formula",
    "snapshot_fields",
    "ScriptText",
    "extract_declarations",
    "FormulaAuditor",
]
