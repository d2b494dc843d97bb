"""Pydantic models for resource properties and Graph request bodies.

These models provide:
1. Validation of property snapshots at the verb boundary (fail fast)
2. The recorded output state returned to the orchestration engine
3. The exact JSON shape PATCHed to the Graph applications endpoint
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any

from pydantic import BaseModel, Field, ValidationError

from .config import REQUESTED_ACCESS_TOKEN_VERSION, SIGN_IN_AUDIENCE
from .errors import PropertyValidationError

# Non-empty, no coercion from numbers/bools
NonEmptyString = Annotated[str, Field(min_length=1, strict=True)]

# Tracked fields, in the order diffs are reported
OBJECT_ID = "objectId"
HOST_NAME = "hostName"
TRACKED_FIELDS: tuple[str, ...] = (OBJECT_ID, HOST_NAME)


# =============================================================================
# Resource Descriptor
# =============================================================================


class ApplicationRef(BaseModel):
    """Reference to an existing directory application by object ID."""

    model_config = {"extra": "ignore", "frozen": True}

    object_id: NonEmptyString = Field(alias=OBJECT_ID)


class WebSignInArgs(ApplicationRef):
    """Desired state of an application prepared for web sign-in."""

    host_name: NonEmptyString = Field(alias=HOST_NAME)

    @property
    def home_page_url(self) -> str:
        return f"https://{self.host_name}"

    @property
    def redirect_uri(self) -> str:
        return f"https://{self.host_name}/signin-oidc"

    @property
    def logout_url(self) -> str:
        return f"https://{self.host_name}/signout-oidc"

    def to_outputs(self) -> dict[str, Any]:
        """Recorded output state, keyed the way the engine stores it."""
        return self.model_dump(by_alias=True)


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _format_errors(
    error: ValidationError, properties: Mapping[str, Any]
) -> PropertyValidationError:
    """Turn pydantic errors into one PropertyValidationError naming every bad field."""
    fields: list[str] = []
    messages: list[str] = []
    for item in error.errors():
        name = ".".join(str(x) for x in item["loc"])
        if name not in fields:
            fields.append(name)
        if item["type"] == "missing":
            messages.append(f"missing required input property '{name}'")
        elif item["type"] == "string_too_short":
            messages.append(f"input property '{name}' must not be empty")
        elif item["type"] == "string_type":
            got = _type_name(properties.get(name))
            messages.append(
                f"expected input property '{name}' of type 'string' but got '{got}'"
            )
        else:
            messages.append(f"input property '{name}': {item['msg']}")
    return PropertyValidationError(fields, "; ".join(messages))


def parse_web_sign_in_args(properties: Mapping[str, Any]) -> WebSignInArgs:
    """Validate a property snapshot into WebSignInArgs.

    Raises:
        PropertyValidationError: If objectId or hostName is missing, empty or not a string.
    """
    try:
        return WebSignInArgs.model_validate(dict(properties))
    except ValidationError as e:
        raise _format_errors(e, properties) from e


def parse_application_ref(properties: Mapping[str, Any]) -> ApplicationRef:
    """Validate a property snapshot that only needs to address the application."""
    try:
        return ApplicationRef.model_validate(dict(properties))
    except ValidationError as e:
        raise _format_errors(e, properties) from e


# =============================================================================
# Graph PATCH body
# =============================================================================


class ApiSettings(BaseModel):
    """The application's `api` block."""

    model_config = {"frozen": True, "populate_by_name": True}

    requested_access_token_version: int = Field(
        REQUESTED_ACCESS_TOKEN_VERSION, alias="requestedAccessTokenVersion"
    )


class WebSettings(BaseModel):
    """The application's `web` block."""

    model_config = {"frozen": True, "populate_by_name": True}

    home_page_url: str = Field(alias="homePageUrl")
    redirect_uris: list[str] = Field(default_factory=list, alias="redirectUris")
    logout_url: str = Field(alias="logoutUrl")


class ApplicationWebSignInPatch(BaseModel):
    """Partial update applied to the application to enable web sign-in."""

    model_config = {"frozen": True, "populate_by_name": True}

    api: ApiSettings = Field(default_factory=ApiSettings)
    sign_in_audience: str = Field(SIGN_IN_AUDIENCE, alias="signInAudience")
    web: WebSettings

    @classmethod
    def for_args(cls, args: WebSignInArgs) -> ApplicationWebSignInPatch:
        """Derive the sign-in configuration from the desired host name."""
        return cls(
            web=WebSettings(
                home_page_url=args.home_page_url,
                redirect_uris=[args.redirect_uri],
                logout_url=args.logout_url,
            ),
        )

    def to_graph_body(self) -> dict[str, Any]:
        """Serialize with Graph property names."""
        return self.model_dump(by_alias=True)
