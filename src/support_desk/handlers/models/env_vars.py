"""
Environment variable models for type-safe configuration.

Each backend gets its own model so that a function which never talks to the
commerce API does not need its credentials configured.
"""

from typing import Annotated, Type, TypeVar

from aws_lambda_env_modeler import BaseModel as BaseEnvModel, get_environment_variables
from pydantic import Field, HttpUrl
from pydantic import ValidationError as PydanticValidationError

from support_desk.handlers.utils.errors import ConfigurationError

EnvModel = TypeVar('EnvModel', bound=BaseEnvModel)


class DataStoreEnvVars(BaseEnvModel):
    """Postgres REST data store holding tickets and messages."""

    SUPABASE_URL: Annotated[HttpUrl, Field(
        description='Base URL of the REST data store'
    )]

    SUPABASE_SERVICE_KEY: Annotated[str, Field(
        description='Service role key sent as apikey and bearer token',
        min_length=1
    )]

    TICKETS_TABLE: Annotated[str, Field(
        default='support_tickets',
        description='Table holding tickets'
    )] = 'support_tickets'

    MESSAGES_TABLE: Annotated[str, Field(
        default='ticket_messages',
        description='Table holding ticket messages'
    )] = 'ticket_messages'

    HTTP_TIMEOUT_SECONDS: Annotated[float, Field(
        default=10.0,
        description='Timeout for a single data store round trip',
        gt=0,
        le=60
    )] = 10.0


class CommerceEnvVars(BaseEnvModel):
    """Commerce platform Admin API used for equipment metafields."""

    SHOPIFY_STORE_DOMAIN: Annotated[str, Field(
        description='Store domain, e.g. my-store.myshopify.com',
        min_length=1
    )]

    SHOPIFY_ADMIN_ACCESS_TOKEN: Annotated[str, Field(
        description='Admin API access token',
        min_length=1
    )]

    SHOPIFY_API_VERSION: Annotated[str, Field(
        default='2024-01',
        description='Admin API version segment',
        pattern=r'^\d{4}-\d{2}$'
    )] = '2024-01'

    HTTP_TIMEOUT_SECONDS: Annotated[float, Field(
        default=10.0,
        description='Timeout for a single GraphQL round trip',
        gt=0,
        le=60
    )] = 10.0


class NotificationEnvVars(BaseEnvModel):
    """Transactional email settings. Every value is optional."""

    RESEND_API_KEY: Annotated[str, Field(
        default='',
        description='Email provider API key; empty disables sending'
    )] = ''

    NOTIFICATION_FROM_EMAIL: Annotated[str, Field(
        default='onboarding@resend.dev',
        description='Sender address for notifications'
    )] = 'onboarding@resend.dev'

    STORE_NAME: Annotated[str, Field(
        default='Union Filters',
        description='Store display name used in email branding'
    )] = 'Union Filters'

    STORE_URL: Annotated[str, Field(
        default='',
        description='Storefront base URL used for links in emails'
    )] = ''

    ADMIN_NOTIFICATION_EMAIL: Annotated[str, Field(
        default='',
        description='Recipient of new-ticket alerts; empty disables them'
    )] = ''

    HTTP_TIMEOUT_SECONDS: Annotated[float, Field(
        default=10.0,
        description='Timeout for a single email API round trip',
        gt=0,
        le=60
    )] = 10.0

    @property
    def email_enabled(self) -> bool:
        """Check if an email provider credential is configured."""
        return bool(self.RESEND_API_KEY)


def load_env_vars(model: Type[EnvModel]) -> EnvModel:
    """
    Read and validate environment variables for ``model``.

    Raises:
        ConfigurationError: If a required variable is missing or malformed
    """
    try:
        return get_environment_variables(model=model)
    except ValueError as e:
        # pydantic ValidationError is a ValueError; the modeler may also re-raise as a plain one
        missing = []
        if isinstance(e, PydanticValidationError):
            missing = [str(error["loc"][-1]) for error in e.errors() if error.get("loc")]
        raise ConfigurationError(
            message=f"Invalid or missing configuration for {model.__name__}: {', '.join(missing)}",
            missing=missing,
        ) from e
