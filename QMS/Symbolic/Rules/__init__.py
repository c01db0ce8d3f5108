"""
Moment substitution rules: orientation, splitting and merging of single rules,
completion of rulebooks, and export of rulebooks to a linear map on the basis.
"""

import importlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .moment_rule import MatchType, MomentRule, PolynomialDifficulty
    from .moment_rulebook import ExportMode, FactorTable, MomentRulebook, MomentRulebookToBasis, RulebookComparison

MODULE_DESCRIPTION = "Moment substitution rules and rulebooks."

_LAZY_IMPORTS = {
    "MomentRule": (".moment_rule", "MomentRule"),
    "PolynomialDifficulty": (".moment_rule", "PolynomialDifficulty"),
    "MatchType": (".moment_rule", "MatchType"),
    "MomentRulebook": (".moment_rulebook", "MomentRulebook"),
    "RulebookComparison": (".moment_rulebook", "RulebookComparison"),
    "FactorTable": (".moment_rulebook", "FactorTable"),
    "ExportMode": (".moment_rulebook", "ExportMode"),
    "MomentRulebookToBasis": (".moment_rulebook", "MomentRulebookToBasis"),
}

def __getattr__(name: str) -> Any:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path, package=__name__)
        return getattr(module, attr_name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

def __dir__():
    return sorted(list(globals().keys()) + list(_LAZY_IMPORTS.keys()))

__all__ = list(_LAZY_IMPORTS.keys())
