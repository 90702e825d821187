"""Runtime settings, read from the environment."""

import os
from pathlib import Path

from pydantic import BaseModel

RESOURCES_DIR = Path(__file__).parent / "resources"

DEFAULT_SCHEMA_PATH = RESOURCES_DIR / "openapi.json"
DEFAULT_DRAFT = "http://json-schema.org/draft-06/schema#"


class Settings(BaseModel):
    """Where the schema document lives and how to validate against it."""

    schema_path: Path = DEFAULT_SCHEMA_PATH
    draft: str = DEFAULT_DRAFT
    catalog_path: Path | None = None  # overrides the catalog derived from the document

    @classmethod
    def from_env(cls) -> "Settings":
        catalog_path = os.getenv("CONTRACT_GUARD_CATALOG_PATH")
        return cls(
            schema_path=Path(os.getenv("CONTRACT_GUARD_SCHEMA_PATH", str(DEFAULT_SCHEMA_PATH))),
            draft=os.getenv("CONTRACT_GUARD_DRAFT", DEFAULT_DRAFT),
            catalog_path=Path(catalog_path) if catalog_path else None,
        )
