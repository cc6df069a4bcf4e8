"""Backend bindings — one value/listing source per remote store."""

from remotefs.backends.aws_imds import IMDSBackend
from remotefs.backends.aws_parameters import ParameterStoreBackend
from remotefs.backends.aws_secrets import SecretsManagerBackend
from remotefs.backends.consul import ConsulBackend
from remotefs.backends.database import DatabaseBackend
from remotefs.backends.gcp_metadata import GCPMetadataBackend
from remotefs.backends.gcp_secrets import GCPSecretManagerBackend
from remotefs.backends.memory import MemoryBackend
from remotefs.backends.vault import (
    AppRoleAuth,
    EnvAuth,
    GitHubAuth,
    TokenAuth,
    UserPassAuth,
    VaultAuthMethod,
    VaultBackend,
)

__all__ = [
    "AppRoleAuth",
    "ConsulBackend",
    "DatabaseBackend",
    "EnvAuth",
    "GCPMetadataBackend",
    "GCPSecretManagerBackend",
    "GitHubAuth",
    "IMDSBackend",
    "MemoryBackend",
    "ParameterStoreBackend",
    "SecretsManagerBackend",
    "TokenAuth",
    "UserPassAuth",
    "VaultAuthMethod",
    "VaultBackend",
]
