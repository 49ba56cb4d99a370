"""
Registry - Declarative language -> tool mapping.

Modules:
    loader      - Load tools.yaml and merge project overrides
    predicates  - Marker, manifest, content and binary checks
    classifier  - Resolve a file to its applicable tools
"""

from quality_gate.models import ApplicableTool
from quality_gate.registry.classifier import LanguageClassifier
from quality_gate.registry.loader import LanguageSpec, ToolRegistry

__all__ = [
    "ApplicableTool",
    "LanguageClassifier",
    "LanguageSpec",
    "ToolRegistry",
]
