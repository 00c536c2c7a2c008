"""Database connection descriptor loaded from a JSON file.

The file is a single JSON object::

    {
        "Schema": "jobs",
        "Host": "127.0.0.1",
        "Port": 3306,
        "Account": "jobs",
        "Password": "secret",
        "SessionKeys": ["c2Vzc2lvbi1rZXk="]
    }

Keys are matched case-insensitively. ``SessionKeys`` holds base64-encoded
byte strings.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import (
    Base64Bytes,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    model_validator,
)
from sqlalchemy.engine import URL

from dbjob.domain.exceptions import ConfigurationError

MYSQL_DRIVER = "mysql+pymysql"
MYSQL_CHARSET = "utf8mb4"
MYSQL_COLLATION = "utf8mb4_unicode_ci"


class DatabaseConfig(BaseModel):
    """MySQL connection descriptor.

    Attributes:
        database: Schema (database) name
        host: Server host name or address
        port: Server TCP port
        account: Login account
        password: Login password
        session_keys: Raw session key byte strings
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    database: str = Field(..., alias="Schema", min_length=1)
    host: str = Field(..., alias="Host", min_length=1)
    port: int = Field(default=3306, alias="Port", gt=0, le=65535)
    account: str = Field(..., alias="Account")
    password: SecretStr = Field(default=SecretStr(""), alias="Password")
    session_keys: list[Base64Bytes] = Field(default_factory=list, alias="SessionKeys")

    @model_validator(mode="before")
    @classmethod
    def _match_keys_case_insensitively(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        canonical = {}
        for name, field in cls.model_fields.items():
            canonical[name.lower()] = field.alias or name
            if field.alias:
                canonical[field.alias.lower()] = field.alias
        return {canonical.get(str(key).lower(), key): value for key, value in data.items()}

    def to_url(self) -> URL:
        """Build the SQLAlchemy URL for this descriptor."""
        return URL.create(
            MYSQL_DRIVER,
            username=self.account,
            password=self.password.get_secret_value(),
            host=self.host,
            port=self.port,
            database=self.database,
            query={"charset": MYSQL_CHARSET},
        )


def parse_database_config(raw: str | bytes, source: str | None = None) -> DatabaseConfig:
    """Decode a JSON document into a DatabaseConfig.

    Args:
        raw: JSON document
        source: Where the document came from, for error messages

    Returns:
        Validated DatabaseConfig

    Raises:
        ConfigurationError: If the document is not valid JSON or fails validation
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"cannot decode database configuration {source or '<input>'}: {e}",
            path=source,
        ) from e

    try:
        return DatabaseConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"invalid database configuration in {source or '<input>'}: {e}",
            path=source,
        ) from e


def load_database_config(path: str | Path) -> DatabaseConfig:
    """Read and decode the database configuration file.

    Args:
        path: Path of the JSON file

    Returns:
        Validated DatabaseConfig

    Raises:
        ConfigurationError: If the file cannot be read or decoded
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ConfigurationError(
            f"cannot read database configuration {path}: {e}", path=str(path)
        ) from e
    return parse_database_config(raw, source=str(path))
