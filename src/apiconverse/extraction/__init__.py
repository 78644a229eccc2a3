"""Parameter extraction, validation and requirement analysis."""

from .extractor import ParameterExtractor, build_prompt, fallback_extract, synonym_mappings
from .sanitize import has_placeholder_values, is_placeholder, sanitize, validate_extracted
from .schema import RequirementAnalysis, analyze_requirements, describe_schema, field_prompt

__all__ = [
    "ParameterExtractor",
    "RequirementAnalysis",
    "analyze_requirements",
    "build_prompt",
    "describe_schema",
    "fallback_extract",
    "field_prompt",
    "has_placeholder_values",
    "is_placeholder",
    "sanitize",
    "synonym_mappings",
    "validate_extracted",
]
