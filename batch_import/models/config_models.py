from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the batch importer.

These are produced by batch_import.config.loader after schema validation.
"""


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for an import run."""
    tenant_id: str  # 対象テナント
    dataset: str = "services"  # tabular input default dataset
    batch_size: int = 25
    pause_seconds: float = 0.1  # バッチ間の待機 (バックエンド負荷抑制)
    catalog_file: str | None = None  # offline Reference Catalog snapshot (YAML)
    reference_defaults: dict[str, str] = field(default_factory=dict)  # entity kind -> policy
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
