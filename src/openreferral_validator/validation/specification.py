"""Structural validation and quality analysis of an OpenAPI document."""

from __future__ import annotations

import logging
from typing import Any

from openreferral_validator.discovery.json_nodes import get_dict, iter_refs
from openreferral_validator.errors import ErrorCode, Severity
from openreferral_validator.models.results import (
    QualityMetrics,
    Recommendation,
    SchemaAnalysis,
    SpecificationValidation,
    ValidationIssue,
)
from openreferral_validator.validation.schema_validator import SchemaValidator

logger = logging.getLogger(__name__)

# Quality score weights, averaged over the factors that apply.
_COVERAGE_WEIGHT = 0.3
_PARAMETER_WEIGHT = 0.25
_SCHEMA_WEIGHT = 0.25
_RESPONSE_WEIGHT = 0.2


def _has_text(node: Any, key: str) -> bool:
    value = node.get(key) if isinstance(node, dict) else None
    return value is not None and bool(str(value).strip())


def _text(node: Any, key: str) -> str | None:
    value = node.get(key) if isinstance(node, dict) else None
    return str(value) if value is not None and str(value) else None


def check_structure(spec: dict[str, Any], validation: SpecificationValidation) -> list[ValidationIssue]:
    """Check required top-level sections, filling in version/title/endpoint count."""
    issues: list[ValidationIssue] = []

    if "openapi" not in spec and "swagger" not in spec:
        issues.append(
            ValidationIssue(
                path="",
                message="OpenAPI specification must contain 'openapi' or 'swagger' field",
                code=ErrorCode.MISSING_OPENAPI_VERSION,
            )
        )
    validation.openapi_version = _text(spec, "openapi") or _text(spec, "swagger")

    if "info" not in spec:
        issues.append(
            ValidationIssue(
                path="info",
                message="OpenAPI specification must contain 'info' section",
                code=ErrorCode.MISSING_INFO,
            )
        )
    else:
        info = spec.get("info")
        validation.title = _text(info, "title")
        validation.version = _text(info, "version")
        if not validation.title:
            issues.append(
                ValidationIssue(
                    path="info.title",
                    message="API title is recommended",
                    code=ErrorCode.MISSING_TITLE,
                    severity=Severity.WARNING,
                )
            )
        if not validation.version:
            issues.append(
                ValidationIssue(
                    path="info.version",
                    message="API version is recommended",
                    code=ErrorCode.MISSING_VERSION,
                    severity=Severity.WARNING,
                )
            )

    if "paths" not in spec:
        issues.append(
            ValidationIssue(
                path="paths",
                message="OpenAPI specification must contain 'paths' section",
                code=ErrorCode.MISSING_PATHS,
            )
        )
    elif isinstance(spec["paths"], dict):
        validation.endpoint_count = len(spec["paths"])
        if validation.endpoint_count == 0:
            issues.append(
                ValidationIssue(
                    path="paths",
                    message="No endpoints defined in paths section",
                    code=ErrorCode.NO_ENDPOINTS,
                    severity=Severity.WARNING,
                )
            )

    return issues


def analyze_schema_structure(spec: dict[str, Any], raw_spec: Any = None) -> SchemaAnalysis:
    """Count the components of ``spec``.

    References are counted on ``raw_spec`` (the document before $ref
    resolution) when it is given.
    """
    analysis = SchemaAnalysis()
    components = get_dict(spec, "components")
    if components is not None:
        analysis.component_count = 1
        for name, attr in (
            ("schemas", "schema_count"),
            ("responses", "response_count"),
            ("parameters", "parameter_count"),
            ("requestBodies", "request_body_count"),
        ):
            section = components.get(name)
            if isinstance(section, dict):
                setattr(analysis, attr, len(section))

    # Swagger 2.0
    definitions = get_dict(spec, "definitions")
    if definitions is not None:
        analysis.schema_count = len(definitions)

    analysis.reference_count = sum(1 for _ in iter_refs(spec if raw_spec is None else raw_spec))
    return analysis


def _has_content_examples(container: Any) -> bool:
    content = get_dict(container, "content")
    if content is None:
        return False
    return any(
        isinstance(media, dict) and ("example" in media or "examples" in media)
        for media in content.values()
    )


def _has_examples(operation: dict[str, Any]) -> bool:
    if _has_content_examples(operation.get("requestBody")):
        return True
    responses = get_dict(operation, "responses") or {}
    return any(_has_content_examples(r) for r in responses.values())


def analyze_quality(spec: dict[str, Any]) -> QualityMetrics:
    """Count documented operations, parameters, responses and schemas."""
    metrics = QualityMetrics()
    total_operations = 0

    for path_item in (get_dict(spec, "paths") or {}).values():
        if not isinstance(path_item, dict):
            continue
        for operation in path_item.values():
            if not isinstance(operation, dict):
                continue
            total_operations += 1
            if _has_text(operation, "description"):
                metrics.endpoints_with_description += 1
            if _has_text(operation, "summary"):
                metrics.endpoints_with_summary += 1
            if _has_examples(operation):
                metrics.endpoints_with_examples += 1

            parameters = operation.get("parameters")
            if isinstance(parameters, list):
                metrics.total_parameters += len(parameters)
                metrics.documented_parameters += sum(
                    1 for p in parameters if _has_text(p, "description")
                )

            responses = operation.get("responses")
            if isinstance(responses, dict):
                metrics.total_responses += len(responses)
                metrics.documented_responses += sum(
                    1 for r in responses.values() if _has_text(r, "description")
                )

    if total_operations:
        metrics.documentation_coverage = metrics.endpoints_with_description / total_operations * 100

    schemas = get_dict(spec, "components", "schemas")
    if schemas is None:
        schemas = get_dict(spec, "definitions")
    if schemas is not None:
        metrics.total_schemas = len(schemas)
        metrics.documented_schemas = sum(1 for s in schemas.values() if _has_text(s, "description"))

    metrics.quality_score = quality_score(metrics)
    return metrics


def quality_score(metrics: QualityMetrics) -> float:
    score = 0.0
    factors = 0
    if metrics.documentation_coverage > 0:
        score += metrics.documentation_coverage * _COVERAGE_WEIGHT
        factors += 1
    if metrics.total_parameters > 0:
        score += metrics.documented_parameters / metrics.total_parameters * 100 * _PARAMETER_WEIGHT
        factors += 1
    if metrics.total_schemas > 0:
        score += metrics.documented_schemas / metrics.total_schemas * 100 * _SCHEMA_WEIGHT
        factors += 1
    if metrics.total_responses > 0:
        score += metrics.documented_responses / metrics.total_responses * 100 * _RESPONSE_WEIGHT
        factors += 1
    return score / factors if factors else 0.0


def recommendations_for(spec: dict[str, Any], issues: list[ValidationIssue]) -> list[Recommendation]:
    recommendations = [
        Recommendation(category="Validation", priority="High", message=i.message, path=i.path)
        for i in issues
        if i.severity == Severity.ERROR
    ]
    recommendations.extend(
        Recommendation(category="Best Practice", priority="Medium", message=i.message, path=i.path)
        for i in issues
        if i.severity == Severity.WARNING
    )

    info = spec.get("info")
    if not isinstance(info, dict):
        return recommendations
    if not _has_text(info, "description"):
        recommendations.append(
            Recommendation(
                category="Documentation",
                priority="Medium",
                message="API description is missing or empty",
                path="info.description",
            )
        )
    if "contact" not in info:
        recommendations.append(
            Recommendation(
                category="Documentation",
                priority="Low",
                message="Contact information is missing",
                path="info.contact",
            )
        )
    if "license" not in info:
        recommendations.append(
            Recommendation(
                category="Legal",
                priority="Low",
                message="License information is missing",
                path="info.license",
            )
        )
    return recommendations


def validate_specification(
    spec: Any, validator: SchemaValidator | None = None, raw_spec: Any = None
) -> SpecificationValidation:
    """Validate an OpenAPI document's structure and analyse its quality.

    Args:
        spec: The (resolved) OpenAPI document.
        validator: Validator used for the JSON Schema dialect check.
        raw_spec: The document before $ref resolution, for reference counts.

    Returns:
        The specification section of the report. ``is_valid`` is False when
        any issue, including a warning, was found.
    """
    validation = SpecificationValidation()
    if not isinstance(spec, dict):
        validation.errors.append(
            ValidationIssue(
                path="",
                message="OpenAPI specification must be a JSON object",
                code=ErrorCode.SPEC_VALIDATION_ERROR,
            )
        )
        return validation

    validator = validator or SchemaValidator()
    issues = check_structure(spec, validation)

    dialect = spec.get("jsonSchemaDialect")
    try:
        result = validator.validate_against_dialect(spec, dialect if isinstance(dialect, str) else None)
        issues.extend(result.errors)
    except Exception as e:
        logger.warning("Could not validate against JSON Schema dialect: %s", e, exc_info=True)
        issues.append(
            ValidationIssue(
                path="",
                message=f"Could not validate against OpenAPI schema: {e}",
                code=ErrorCode.SCHEMA_VALIDATION_FAILED,
                severity=Severity.WARNING,
            )
        )

    validation.errors = [i for i in issues if i.severity == Severity.ERROR]
    validation.warnings = [i for i in issues if i.severity != Severity.ERROR]
    validation.is_valid = not issues
    validation.schema_analysis = analyze_schema_structure(spec, raw_spec)
    validation.quality_metrics = analyze_quality(spec)
    validation.recommendations = recommendations_for(spec, issues)

    logger.info(
        "Specification validation completed: valid=%s errors=%d warnings=%d",
        validation.is_valid,
        len(validation.errors),
        len(validation.warnings),
    )
    return validation


__all__ = [
    "analyze_quality",
    "analyze_schema_structure",
    "check_structure",
    "quality_score",
    "recommendations_for",
    "validate_specification",
]
