"""
Component catalogue for QMS.

The package is organised as a pipeline: operator words (Scenario) are
registered as symbols and combined into polynomials (Symbolic), constrained
by substitution rules (Symbolic.Rules), arranged into moment and localizing
matrices (Matrix), and owned by a matrix system (System). This module lists
those components in pipeline order together with their public entry points,
read from each sub-package's lazy export table, so that nothing heavier than
the sub-package ``__init__`` is imported.

Typical usage
-------------
    import QMS
    for component in QMS.list_modules(include_entry_points=True):
        print(component['name'], component['entry_points'])

    QMS.describe_module('Symbolic.Rules')
    QMS.locate('MomentRulebook')        # 'QMS.Symbolic.Rules.moment_rulebook'
"""

from __future__ import annotations

import importlib
import importlib.util
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

_FALLBACK = "No description available."

@dataclass(frozen=True)
class ComponentInfo:
    name        : str                       # short name, e.g. "Symbolic.Rules"
    path        : str                       # package path, e.g. "QMS.Symbolic.Rules"
    stage       : str                       # what the component turns into what
    description : str   = _FALLBACK
    entry_points: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self, include_entry_points: bool = False) -> Dict[str, object]:
        output = {"name": self.name, "path": self.path, "stage": self.stage, "description": self.description}
        if include_entry_points:
            output["entry_points"] = list(self.entry_points)
        return output

# Pipeline order: each stage consumes what the previous one produces
_PIPELINE: Tuple[Tuple[str, str], ...] = (
    ("Scenario",        "operators -> canonical words"),
    ("Symbolic",        "words -> symbols and polynomials"),
    ("Symbolic.Rules",  "polynomial constraints -> substitution rules"),
    ("Matrix",          "word grids -> symbolic matrices and numeric bases"),
    ("System",          "matrices and rulebooks -> one deduplicated system"),
)

# ----------------------------------------------------------------

def _package(name: str):
    try:
        return importlib.import_module(f"QMS.{name}")
    except ImportError:
        return None

def _component(name: str, stage: str) -> ComponentInfo:
    package = _package(name)
    if package is None:
        return ComponentInfo(name, f"QMS.{name}", stage)
    description = getattr(package, "MODULE_DESCRIPTION", None) or _FALLBACK
    exports     = getattr(package, "_LAZY_IMPORTS", {})
    return ComponentInfo(name, f"QMS.{name}", stage, description.strip(), tuple(exports))

def _short_name(name_or_path: str) -> str:
    return name_or_path[len("QMS."):] if name_or_path.startswith("QMS.") else name_or_path

# ----------------------------------------------------------------

def list_modules(include_entry_points: bool = False) -> List[Dict[str, object]]:
    """
    Return the QMS components in pipeline order.

    Each record holds ``name``, ``path``, ``stage`` and ``description``; with
    ``include_entry_points`` it also lists the names exported by the component.
    """
    return [_component(name, stage).to_dict(include_entry_points) for name, stage in _PIPELINE]

def describe_module(name_or_path: str) -> str:
    """
    One-line description of a component, given as a short name ("Matrix") or a
    package path ("QMS.Matrix"). Unknown names give a fallback text.
    """
    name = _short_name(name_or_path)
    for known, stage in _PIPELINE:
        if known == name:
            return _component(known, stage).description
    return _FALLBACK

def locate(entry_point: str) -> Optional[str]:
    """
    Dotted path of the module defining an exported class or function, e.g.
    ``locate("MatrixSystem") == "QMS.System.matrix_system"``; None if no
    component exports it.
    """
    for name, _ in _PIPELINE:
        package = _package(name)
        exports = getattr(package, "_LAZY_IMPORTS", {}) if package is not None else {}
        if entry_point in exports:
            module_path, _attr = exports[entry_point]
            return importlib.util.resolve_name(module_path, package.__name__)
    return None

# ----------------------------------------------------------------
#! End of registry
# ----------------------------------------------------------------
