from __future__ import annotations

import os
from dataclasses import dataclass

# --------------------------------
# Defaults

# Charset declared on outgoing mail when none is configured
DEFAULT_CHARSET = "UTF-8"

# Layout script name, resolved as <layout_path>/<name>.html
DEFAULT_LAYOUT_NAME = "layout"

# Line format of the plain-text body
DEFAULT_LINE_FORMAT = "{timestamp} {priority_name} ({priority}): {message}"

# Brevo transactional mail endpoint
BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"

# Timeout for HTTP based transports (seconds)
HTTP_TIMEOUT_SECONDS = 20.0

# Transport used when MAIL_LOG_TRANSPORT is unset
DEFAULT_TRANSPORT = "brevo"
# --------------------------------


class ConfigurationError(ValueError):
    """Raised when a sink, mail or factory is configured inconsistently."""


@dataclass
class TransportSettings:
    provider: str
    brevo_api_key: str | None = None
    sendgrid_api_key: str | None = None
    aws_region: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None

    @staticmethod
    def from_env(provider_default: str = DEFAULT_TRANSPORT) -> "TransportSettings":
        def require(name: str) -> str:
            value = os.getenv(name)
            if value is None or not value.strip():
                raise ValueError(f"Environment variable {name} is required.")
            return value.strip()

        def optional(name: str) -> str | None:
            value = os.getenv(name)
            if value is None or not value.strip():
                return None
            return value.strip()

        provider = (optional("MAIL_LOG_TRANSPORT") or provider_default).lower()
        settings = TransportSettings(provider=provider)
        if provider == "brevo":
            settings.brevo_api_key = require("BREVO_API_KEY")
        elif provider == "sendgrid":
            settings.sendgrid_api_key = require("SENDGRID_API_KEY")
        elif provider == "ses":
            region = optional("AWS_REGION") or optional("AWS_DEFAULT_REGION")
            if region is None:
                raise ValueError("Either AWS_REGION or AWS_DEFAULT_REGION is required.")
            settings.aws_region = region
            settings.aws_access_key_id = optional("AWS_ACCESS_KEY_ID")
            settings.aws_secret_access_key = optional("AWS_SECRET_ACCESS_KEY")
            settings.aws_session_token = optional("AWS_SESSION_TOKEN")
        elif provider != "memory":
            raise ValueError(f"Unsupported MAIL_LOG_TRANSPORT: {provider}")
        return settings
