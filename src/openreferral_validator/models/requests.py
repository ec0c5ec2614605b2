"""Validation request models.

Requests arrive as JSON (camelCase keys) from the CLI, a config file or a
calling service, so every model accepts both the camelCase alias and the
Python field name.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _RequestModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class BasicAuth(_RequestModel):
    username: str
    password: str = ""


class DataSourceAuth(_RequestModel):
    """Credentials sent with requests to the API under test or the schema host."""

    api_key: str | None = None
    api_key_header: str = "X-API-Key"
    bearer_token: str | None = None
    basic_auth: BasicAuth | None = None
    custom_headers: dict[str, str] = Field(default_factory=dict)


class OpenApiSchemaSource(_RequestModel):
    url: str | None = None
    authentication: DataSourceAuth | None = None


class ValidationOptions(_RequestModel):
    """Switches controlling what a validation run does and reports."""

    test_endpoints: bool = True
    validate_specification: bool = True
    timeout_seconds: int = Field(default=30, ge=1)
    max_concurrent_requests: int = Field(default=5, ge=1)
    skip_authentication: bool = True
    test_optional_endpoints: bool = True
    treat_optional_endpoints_as_warnings: bool = True
    include_response_body: bool = True
    include_test_results: bool = True


class ValidationRequest(_RequestModel):
    """A request to validate an OpenAPI document and optionally a live API.

    Example:
        >>> ValidationRequest.model_validate(
        ...     {"baseUrl": "https://api.example.org", "options": {"testEndpoints": False}}
        ... )
    """

    open_api_schema: OpenApiSchemaSource = Field(default_factory=OpenApiSchemaSource)
    base_url: str | None = None
    data_source_auth: DataSourceAuth | None = None
    options: ValidationOptions = Field(default_factory=ValidationOptions)

    @property
    def schema_url(self) -> str | None:
        url = self.open_api_schema.url
        return url.strip() if url and url.strip() else None


__all__ = [
    "BasicAuth",
    "DataSourceAuth",
    "OpenApiSchemaSource",
    "ValidationOptions",
    "ValidationRequest",
]
