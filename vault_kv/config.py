import configparser
from dataclasses import dataclass
from pathlib import Path

TRUE_VALUES = ("true", "1", "yes")


@dataclass
class VaultConfig:
    url: str
    token: str
    namespace: str | None = None
    mount: str = "secret"


@dataclass
class CacheConfig:
    enabled: bool = True
    list_ttl_seconds: int = 300
    secret_ttl_seconds: int = 120
    max_entries: int = 0  # 0 = unbounded


@dataclass
class ConnectionConfig:
    timeout_seconds: int = 30
    retry_attempts: int = 3
    retry_delay_seconds: int = 1
    verify_tls: bool = True
    method_override: bool = False  # Send LIST as POST + X-HTTP-Method-Override


@dataclass
class SearchConfig:
    max_results: int = 100
    max_depth: int = 10
    max_workers: int = 8


@dataclass
class LogConfig:
    level: str = "INFO"
    file: str = "vault-kv.log"
    console: bool = True


@dataclass
class AppConfig:
    vault: VaultConfig
    cache: CacheConfig
    connection: ConnectionConfig
    search: SearchConfig
    logging: LogConfig


def _read_int(section: configparser.SectionProxy, key: str, target: dict) -> None:
    value = section.get(key)
    if not value:
        return
    try:
        target[key] = int(value)
    except ValueError:
        raise ValueError(f"Invalid {key} value in config: '{value}' - must be an integer")


def _read_bool(section: configparser.SectionProxy, key: str, target: dict) -> None:
    value = section.get(key)
    if value:
        target[key] = value.lower() in TRUE_VALUES


def load_config(config_path: str | None = None, **cli_args) -> AppConfig:
    """
    Load configuration from an INI file and/or CLI arguments.
    CLI arguments take precedence over config file.

    Args:
        config_path: Path to the INI configuration file.
        **cli_args: Key-value pairs from command line arguments
            (url, token, namespace, mount, debug).

    Returns:
        AppConfig: The populated configuration object.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If required fields (url, token) are missing or invalid.
    """
    # Initialize with defaults
    vault_config = {
        "url": None,
        "token": None,
        "namespace": None,
        "mount": "secret",
    }
    cache_config = {
        "enabled": True,
        "list_ttl_seconds": 300,
        "secret_ttl_seconds": 120,
        "max_entries": 0,
    }
    connection_config = {
        "timeout_seconds": 30,
        "retry_attempts": 3,
        "retry_delay_seconds": 1,
        "verify_tls": True,
        "method_override": False,
    }
    search_config = {
        "max_results": 100,
        "max_depth": 10,
        "max_workers": 8,
    }
    log_config = {
        "level": "INFO",
        "file": "vault-kv.log",
        "console": True,
    }

    # Parse INI file if provided
    if config_path is not None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        parser = configparser.ConfigParser()
        parser.read(config_file, encoding="utf-8")

        # Load [vault] section
        if parser.has_section("vault"):
            vault_section = parser["vault"]
            for key in ("url", "token", "namespace", "mount"):
                if vault_section.get(key):
                    vault_config[key] = vault_section.get(key)

        # Load [cache] section
        if parser.has_section("cache"):
            cache_section = parser["cache"]
            _read_bool(cache_section, "enabled", cache_config)
            _read_int(cache_section, "list_ttl_seconds", cache_config)
            _read_int(cache_section, "secret_ttl_seconds", cache_config)
            _read_int(cache_section, "max_entries", cache_config)

        # Load [connection] section
        if parser.has_section("connection"):
            conn_section = parser["connection"]
            _read_int(conn_section, "timeout_seconds", connection_config)
            _read_int(conn_section, "retry_attempts", connection_config)
            _read_int(conn_section, "retry_delay_seconds", connection_config)
            _read_bool(conn_section, "verify_tls", connection_config)
            _read_bool(conn_section, "method_override", connection_config)

        # Load [search] section
        if parser.has_section("search"):
            search_section = parser["search"]
            _read_int(search_section, "max_results", search_config)
            _read_int(search_section, "max_depth", search_config)
            _read_int(search_section, "max_workers", search_config)

        # Load [logging] section
        if parser.has_section("logging"):
            log_section = parser["logging"]
            if log_section.get("level"):
                log_config["level"] = log_section.get("level")
            if log_section.get("file"):
                log_config["file"] = log_section.get("file")
            _read_bool(log_section, "console", log_config)

    # Override with CLI arguments (cli_args take precedence)
    for key in ("url", "token", "mount"):
        if cli_args.get(key) is not None:
            vault_config[key] = cli_args[key]
    if cli_args.get("namespace") is not None:
        vault_config["namespace"] = cli_args["namespace"] or None
    if cli_args.get("debug"):
        log_config["level"] = "DEBUG"
        log_config["console"] = True

    # Validate required fields
    missing_fields = [key for key in ("url", "token") if not vault_config[key]]
    if missing_fields:
        raise ValueError(f"Missing required configuration fields: {', '.join(missing_fields)}")

    url = vault_config["url"].strip()
    if not url.startswith(("http://", "https://")):
        raise ValueError(f"Invalid url: {url}. Must start with http:// or https://")
    vault_config["url"] = url.rstrip("/")

    mount = vault_config["mount"].strip("/")
    if not mount:
        raise ValueError("Invalid mount: must not be empty")
    vault_config["mount"] = mount

    if search_config["max_workers"] < 1:
        raise ValueError("Invalid max_workers value in config: must be at least 1")

    return AppConfig(
        vault=VaultConfig(
            url=vault_config["url"],
            token=vault_config["token"],
            namespace=vault_config["namespace"],
            mount=vault_config["mount"],
        ),
        cache=CacheConfig(
            enabled=cache_config["enabled"],
            list_ttl_seconds=cache_config["list_ttl_seconds"],
            secret_ttl_seconds=cache_config["secret_ttl_seconds"],
            max_entries=cache_config["max_entries"],
        ),
        connection=ConnectionConfig(
            timeout_seconds=connection_config["timeout_seconds"],
            retry_attempts=connection_config["retry_attempts"],
            retry_delay_seconds=connection_config["retry_delay_seconds"],
            verify_tls=connection_config["verify_tls"],
            method_override=connection_config["method_override"],
        ),
        search=SearchConfig(
            max_results=search_config["max_results"],
            max_depth=search_config["max_depth"],
            max_workers=search_config["max_workers"],
        ),
        logging=LogConfig(
            level=log_config["level"],
            file=log_config["file"],
            console=log_config["console"],
        ),
    )
