"""
Service configuration loading and validation.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Any

import yaml
from dotenv import load_dotenv

from core.errors import InvalidInput
from core.wallet import parse_secret
from interfaces.core import MAX_URI_LENGTH

REQUIRED_FIELDS = [
    "name",
    "rpc_endpoint",
    "private_key",
    "token.metadata_uri",
]

CONFIG_VALIDATION_RULES = [
    ("server.port", int, 1, 65535, "server.port must be between 1 and 65535"),
    ("token.decimals", int, 0, 9, "token.decimals must be between 0 and 9"),
    ("token.seller_fee_basis_points", int, 0, 10_000, "token.seller_fee_basis_points must be between 0 and 10000"),
    ("ledger.confirm_timeout", (int, float), 1, 600, "ledger.confirm_timeout must be between 1 and 600 seconds"),
    ("registry.max_pending", int, 1, 10_000, "registry.max_pending must be between 1 and 10000"),
]

# Valid values for enum-like fields
VALID_VALUES = {
    "ledger.commitment": ["processed", "confirmed", "finalized"],
    "logging.level": ["DEBUG", "INFO", "WARNING", "ERROR"],
}

_ENV_PATTERN = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-(.*))?\}$")


@dataclass(frozen=True)
class RegistryConfig:
    github_token: str | None = field(default=None, repr=False)
    owner: str = "solflare-wallet"
    repo: str = "utl-aggregator"
    base_branch: str = "main"
    api_url: str = "https://api.github.com"
    max_pending: int = 100


@dataclass(frozen=True)
class ServiceConfig:
    """Validated configuration handed to component constructors."""

    name: str
    rpc_endpoint: str
    secret_key: bytes = field(repr=False)
    host: str = "0.0.0.0"
    port: int = 3000
    commitment: str = "confirmed"
    skip_preflight: bool = False
    confirm_timeout: float = 60.0
    decimals: int = 6
    metadata_uri: str = ""
    logo_uri: str = ""
    website: str = ""
    seller_fee_basis_points: int = 0
    is_mutable: bool = True
    tags: tuple[str, ...] = ()
    validate_metadata_uri: bool = True
    metadata_document: dict[str, Any] = field(default_factory=dict)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    log_level: str = "INFO"
    log_file: str | None = None


def load_service_config(path: str) -> ServiceConfig:
    """Load, validate and convert a service configuration YAML file."""
    with open(path) as f:
        config = yaml.safe_load(f)

    env_file = config.get("env_file")
    if env_file:
        env_path = os.path.join(os.path.dirname(path), env_file)
        if os.path.exists(env_path):
            load_dotenv(env_path, override=True)
        else:
            load_dotenv(env_file, override=True)

    resolve_env_vars(config)
    validate_config(config)
    return build_service_config(config)


def resolve_env_vars(config: dict) -> None:
    """Recursively resolve ${VAR} and ${VAR:-default} placeholders in place."""
    def resolve_env(value):
        if not isinstance(value, str):
            return value
        match = _ENV_PATTERN.match(value)
        if not match:
            return value
        env_var, default = match.groups()
        env_value = os.getenv(env_var)
        if env_value is None:
            if default is None:
                raise ValueError(f"Environment variable '{env_var}' not found")
            return default
        return env_value

    def resolve_all(d):
        for k, v in d.items():
            if isinstance(v, dict):
                resolve_all(v)
            else:
                d[k] = resolve_env(v)

    resolve_all(config)


def get_nested_value(config: dict, path: str) -> Any:
    """Get a nested value from the configuration using dot notation."""
    keys = path.split(".")
    value = config
    for key in keys:
        if not isinstance(value, dict) or key not in value:
            raise ValueError(f"Missing required config key: {path}")
        value = value[key]
    return value


def validate_config(config: dict) -> None:
    """Validate the configuration against the field rules."""
    for path in REQUIRED_FIELDS:
        if get_nested_value(config, path) in (None, ""):
            raise ValueError(f"Config key {path} must not be empty")

    rpc_endpoint = config["rpc_endpoint"]
    if not str(rpc_endpoint).startswith(("http://", "https://")):
        raise ValueError("rpc_endpoint must start with http:// or https://")

    metadata_uri = str(config["token"]["metadata_uri"])
    if len(metadata_uri.encode("utf-8")) > MAX_URI_LENGTH:
        raise ValueError(f"token.metadata_uri must be at most {MAX_URI_LENGTH} bytes")

    for path, expected_type, min_val, max_val, error_msg in CONFIG_VALIDATION_RULES:
        try:
            value = get_nested_value(config, path)
        except ValueError:
            continue

        if isinstance(value, bool) or not isinstance(value, expected_type):
            raise ValueError(f"Type error: {error_msg}")
        if not (min_val <= value <= max_val):
            raise ValueError(f"Range error: {error_msg}")

    for path, valid_values in VALID_VALUES.items():
        try:
            value = get_nested_value(config, path)
        except ValueError:
            continue
        if value not in valid_values:
            raise ValueError(f"{path} must be one of {valid_values}")


def build_service_config(config: dict) -> ServiceConfig:
    """Convert a validated configuration dict into a ServiceConfig."""
    try:
        secret_key = parse_secret(str(config["private_key"]))
    except InvalidInput as e:
        raise ValueError(f"private_key: {e.message}") from e

    server = config.get("server") or {}
    ledger = config.get("ledger") or {}
    token = config.get("token") or {}
    registry = config.get("registry") or {}
    logging_cfg = config.get("logging") or {}

    return ServiceConfig(
        name=config["name"],
        rpc_endpoint=config["rpc_endpoint"],
        secret_key=secret_key,
        host=server.get("host", "0.0.0.0"),
        port=server.get("port", 3000),
        commitment=ledger.get("commitment", "confirmed"),
        skip_preflight=bool(ledger.get("skip_preflight", False)),
        confirm_timeout=float(ledger.get("confirm_timeout", 60)),
        decimals=token.get("decimals", 6),
        metadata_uri=token["metadata_uri"],
        logo_uri=token.get("logo_uri", ""),
        website=token.get("website", ""),
        seller_fee_basis_points=token.get("seller_fee_basis_points", 0),
        is_mutable=bool(token.get("is_mutable", True)),
        tags=tuple(token.get("tags") or ()),
        validate_metadata_uri=bool(token.get("validate_metadata_uri", True)),
        metadata_document=dict(config.get("metadata_document") or {}),
        registry=RegistryConfig(
            github_token=registry.get("github_token") or None,
            owner=registry.get("owner", "solflare-wallet"),
            repo=registry.get("repo", "utl-aggregator"),
            base_branch=registry.get("base_branch", "main"),
            api_url=registry.get("api_url", "https://api.github.com"),
            max_pending=registry.get("max_pending", 100),
        ),
        log_level=logging_cfg.get("level", "INFO"),
        log_file=logging_cfg.get("file") or None,
    )


def print_config_summary(config: ServiceConfig) -> None:
    """Print a summary of the loaded configuration."""
    print(f"Service name: {config.name}")
    print(f"RPC endpoint: {config.rpc_endpoint}")
    print(f"Listening on: {config.host}:{config.port}")
    print("Token settings:")
    print(f"  - Decimals: {config.decimals}")
    print(f"  - Metadata URI: {config.metadata_uri}")
    print(f"  - Metadata URI check: {'enabled' if config.validate_metadata_uri else 'disabled'}")
    print(f"Commitment: {config.commitment} (timeout {config.confirm_timeout:.0f}s)")
    if config.registry.github_token:
        print(f"Registry: {config.registry.owner}/{config.registry.repo}")
    else:
        print("Registry: disabled (no GitHub token)")
    print("Configuration loaded successfully!")
