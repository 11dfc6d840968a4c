"""
JSON Schema checks for stored documents and config.

Schemas live in schemas/<name>.schema.json at the repo root. A document
that fails its schema is never written, and an imported document that
fails is dropped.
"""

import json
from functools import lru_cache
from pathlib import Path

import jsonschema
from jsonschema.exceptions import best_match
from jsonschema.validators import validator_for

SCHEMAS_DIR = Path(__file__).resolve().parents[2] / "schemas"


class ValidationError(Exception):
    """Data does not match its schema."""

    def __init__(self, schema_name: str, message: str, path: str = None):
        self.schema_name = schema_name
        self.path = path
        super().__init__(f"[{schema_name}] {message}" + (f" at {path}" if path else ""))


def _dotted(error: jsonschema.ValidationError) -> str:
    return ".".join(str(p) for p in error.absolute_path) or "(root)"


@lru_cache(maxsize=None)
def _validator(schema_name: str):
    schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
    if not schema_path.exists():
        raise ValidationError(schema_name, f"Schema file not found: {schema_path}")
    schema = json.loads(schema_path.read_text(encoding="utf-8"))
    cls = validator_for(schema)
    cls.check_schema(schema)
    return cls(schema)


def validate(data, schema_name: str) -> None:
    """Raise ValidationError for the most relevant schema violation in data."""
    error = best_match(_validator(schema_name).iter_errors(data))
    if error is not None:
        raise ValidationError(schema_name, error.message, _dotted(error))


def validation_errors(data, schema_name: str) -> list[str]:
    """Every violation as "path: message", empty when data is valid."""
    errors = sorted(_validator(schema_name).iter_errors(data), key=_dotted)
    return [f"{_dotted(e)}: {e.message}" for e in errors]


def validate_before_write(data: dict, schema_name: str, filepath: Path) -> None:
    """Validate data that is about to be written to filepath.

    Raises:
        ValidationError: Naming the file, so a bad write is easy to trace
    """
    try:
        validate(data, schema_name)
    except ValidationError as e:
        raise ValidationError(
            schema_name,
            f"Refusing to write invalid data to {filepath}: {e}"
        ) from None
