"""Configuration loader and validation for reconciliation settings."""

from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_ALIASES: dict[str, str] = {
    "marybetancourt": "marybetandcourt",
}

# Historical payload shapes: top-level field, nested under "payload", then synonyms
DEFAULT_PAYLOAD_FIELDS: dict[str, list[str]] = {
    "service": ["itemSold", "payload.itemSold", "serviceName", "payload.serviceName"],
    "timestamp": [
        "transactionDate",
        "payload.transactionDate",
        "createdDate",
        "payload.createdDate",
    ],
    "amount_due": ["amountDue", "payload.amountDue"],
    "tip": ["tip", "payload.tip", "tipAmount", "payload.tipAmount"],
    "customer_name": ["customerName", "payload.customerName"],
    "provider_name": [
        "serviceProviderName",
        "payload.serviceProviderName",
        "providerName",
        "payload.providerName",
    ],
    "provider_id": ["serviceProviderId", "payload.serviceProviderId"],
    "transaction_id": [
        "transactionId",
        "payload.transactionId",
        "userPaymentsMstId",
        "payload.userPaymentsMstId",
    ],
}


class BusinessConfig(BaseModel):
    """Business calendar settings."""

    timezone: str = "America/New_York"


class SheetConfig(BaseModel):
    """Layout of the point-of-sale tabular export."""

    encoding: str = "utf-8"
    delimiter: str = ","
    xlsx_header_row: int = 23
    csv_header_row: int = 1
    stop_label: str = "total"
    # Canonical field name -> 1-based column index
    columns: dict[str, int] = Field(
        default_factory=lambda: {
            "checkout_date": 1,
            "checked_out_by": 2,
            "transaction_id": 3,
            "appointment_date": 4,
            "customer_name": 5,
            "item_sold": 6,
            "sale_source": 8,
            "provider_name": 9,
            "amount_due": 12,
            "tip": 14,
            "cash": 17,
            "gift_card": 19,
            "credit_card": 22,
            "charge_method": 31,
            "change_due": 32,
        }
    )


class InputConfig(BaseModel):
    """Configuration for input file parsing."""

    sheet: SheetConfig = Field(default_factory=SheetConfig)


class NormalizationConfig(BaseModel):
    """Rules for turning raw rows into canonical transactions."""

    date_formats: list[str] = Field(
        default_factory=lambda: [
            "%m/%d/%Y %I:%M %p",
            "%m/%d/%Y %I:%M:%S %p",
            "%m/%d/%Y %H:%M",
            "%m/%d/%Y %H:%M:%S",
            "%m/%d/%y %I:%M %p",
            "%Y-%m-%d %H:%M",
            "%Y-%m-%d %H:%M:%S",
        ]
    )
    summary_labels: list[str] = Field(
        default_factory=lambda: ["total", "redeemed", "money earned"]
    )
    summary_prefixes: list[str] = Field(
        default_factory=lambda: ["cash:", "credit card:", "total:"]
    )
    # Provider identifier -> display name
    providers: dict[str, str] = Field(default_factory=dict)
    # Fingerprint -> fingerprint as spelled in the directory
    provider_aliases: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_PROVIDER_ALIASES)
    )
    unknown_provider_name: str = "Unknown Tech"


class StoreConfig(BaseModel):
    """Configuration for the persisted event store."""

    database_url: str = "sqlite:///pos_events.db"
    event_id_prefix: str = "manual-backfill"
    business_id: str = "manual-backfill"
    user_agent: str = "pos-backfill-recon"


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    # Rotating log file, in addition to the console
    file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    business: BusinessConfig = Field(default_factory=BusinessConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    # Canonical field -> dotted payload paths, tried in order
    payload_fields: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_PAYLOAD_FIELDS.items()}
    )
    store: StoreConfig = Field(default_factory=StoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "business": {
            "timezone": "America/New_York",
        },
        "input": {
            "sheet": SheetConfig().model_dump(),
        },
        "normalization": {
            "date_formats": NormalizationConfig().date_formats,
            "summary_labels": ["total", "redeemed", "money earned"],
            "summary_prefixes": ["cash:", "credit card:", "total:"],
            "providers": {},
            "provider_aliases": dict(DEFAULT_PROVIDER_ALIASES),
            "unknown_provider_name": "Unknown Tech",
        },
        "payload_fields": {k: list(v) for k, v in DEFAULT_PAYLOAD_FIELDS.items()},
        "store": {
            "database_url": "sqlite:///pos_events.db",
            "event_id_prefix": "manual-backfill",
            "business_id": "manual-backfill",
            "user_agent": "pos-backfill-recon",
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file": None,
        },
    }


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Build the run configuration, layering a YAML file over the defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        Validated ReconConfig

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation
    """
    settings = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                overrides = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(overrides, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping of settings")

        settings = _deep_merge(settings, overrides)
        settings["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**settings)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge ``override`` into a copy of ``base``; only mappings merge, lists replace."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _config_header(settings: dict[str, Any]) -> str:
    sheet = settings["input"]["sheet"]
    lines = [
        "# POS transaction backfill configuration",
        "#",
        f"# Exports: xlsx header on row {sheet['xlsx_header_row']}, "
        f"csv header on row {sheet['csv_header_row']}; rows stop at "
        f"'{sheet['stop_label']}'.",
        "# input.sheet.columns maps each field to its 1-based export column:",
    ]
    for name, column in sorted(sheet["columns"].items(), key=lambda item: item[1]):
        lines.append(f"#   {column:>2}  {name}")
    lines += [
        "# normalization.providers maps provider id -> display name.",
        "# payload_fields lists, per field, the stored-event paths tried in order.",
    ]
    return "\n".join(lines) + "\n\n"


def generate_default_config(output_path: Path) -> None:
    """
    Write the default configuration as commented YAML.

    Args:
        output_path: Path to write the configuration file
    """
    settings = get_default_config()
    content = _config_header(settings) + yaml.dump(
        settings, default_flow_style=False, sort_keys=False
    )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(content)

    logger.info(f"Generated configuration file: {output_path}")
