"""Where the PII key comes from.

``SECRETS_BACKEND`` picks the source:

- env: the ``PII_ENCRYPTION_KEY`` setting (local development and tests)
- aws_secrets: AWS Secrets Manager, as a plain secret or a JSON bundle
- gcp_secrets: GCP Secret Manager

Cloud SDKs are optional extras and imported only when their backend is
selected. A secret is read once and kept for the life of the process.
"""

import json
import logging
from functools import lru_cache

from app.config import settings

logger = logging.getLogger(__name__)

PII_KEY_NAME = "pii_encryption_key"

# Only these names may be resolved from settings by the env backend
_ENV_SECRETS = frozenset({PII_KEY_NAME})


def _from_env(name: str) -> str:
    if name not in _ENV_SECRETS:
        raise ValueError(f"Secret '{name}' not found in environment")
    return getattr(settings, name, "") or ""


def _from_aws(name: str) -> str:
    """Look up ``<prefix>/<name>``, then fall back to a JSON bundle stored at ``<prefix>``."""
    import boto3

    client = boto3.client("secretsmanager", region_name=settings.aws_region)
    prefix = settings.secrets_prefix
    try:
        return client.get_secret_value(SecretId=f"{prefix}/{name}" if prefix else name)["SecretString"]
    except client.exceptions.ResourceNotFoundException:
        if not prefix:
            raise ValueError(f"Secret '{name}' not found in AWS Secrets Manager")

    bundle = json.loads(client.get_secret_value(SecretId=prefix)["SecretString"])
    try:
        return bundle[name]
    except KeyError:
        raise ValueError(f"Secret '{name}' not found in AWS secret '{prefix}'")


def _from_gcp(name: str) -> str:
    from google.cloud import secretmanager

    project = settings.secrets_prefix or settings.gcp_project_id
    client = secretmanager.SecretManagerServiceClient()
    version = client.access_secret_version(
        request={"name": f"projects/{project}/secrets/{name}/versions/latest"}
    )
    return version.payload.data.decode("UTF-8")


_SOURCES = {
    "env": _from_env,
    "aws_secrets": _from_aws,
    "gcp_secrets": _from_gcp,
}


@lru_cache(maxsize=8)
def get_secret(name: str) -> str:
    """Resolve a secret through the configured backend.

    Raises ValueError for an unknown backend or a missing or empty secret.
    """
    source = _SOURCES.get(settings.secrets_backend)
    if source is None:
        raise ValueError(
            f"Unknown secrets backend: '{settings.secrets_backend}'. "
            f"Valid options: {', '.join(_SOURCES)}"
        )

    logger.info("Loading secret '%s' from %s", name, settings.secrets_backend)
    value = source(name)
    if not value:
        raise ValueError(f"Secret '{name}' is empty")
    return value


def get_pii_encryption_key() -> str:
    return get_secret(PII_KEY_NAME)
