"""
Argument validation against JSON schemas.

The registry and dispatch engine only depend on the SchemaValidator
protocol; JsonSchemaValidator is the default implementation on top of the
``jsonschema`` library.
"""

from __future__ import annotations

from typing import Any, Protocol

from jsonschema import Draft7Validator, SchemaError
from jsonschema.validators import validator_for
from referencing.exceptions import Unresolvable


class SchemaValidator(Protocol):
    """Checks schemas and validates values against them."""

    def check_schema(self, schema: dict[str, Any]) -> None:
        """Raise ValueError if ``schema`` is not a valid schema."""
        ...

    def validate(self, schema: dict[str, Any], value: Any) -> list[str]:
        """Return validation error messages; an empty list means valid."""
        ...


class JsonSchemaValidator:
    """
    SchemaValidator backed by ``jsonschema``.

    The draft is taken from the schema's ``$schema`` keyword, defaulting to
    Draft 7 (what function-calling schemas are usually written against).
    """

    def __init__(self, default_validator: type = Draft7Validator):
        self._default = default_validator

    def _validator_class(self, schema: dict[str, Any]):
        return validator_for(schema, default=self._default)

    def check_schema(self, schema: dict[str, Any]) -> None:
        try:
            self._validator_class(schema).check_schema(schema)
        except SchemaError as e:
            raise ValueError(f"invalid parameter schema: {e.message}") from e

    def validate(self, schema: dict[str, Any], value: Any) -> list[str]:
        validator = self._validator_class(schema)(schema)
        # $refs are resolved lazily, so a dangling one only surfaces here
        try:
            errors = sorted(
                validator.iter_errors(value), key=lambda e: [str(p) for p in e.absolute_path]
            )
        except SchemaError as e:
            return [f"invalid parameter schema: {e.message}"]
        except Unresolvable as e:
            return [f"unresolvable schema reference: {e}"]
        messages = []
        for error in errors:
            path = "/".join(str(p) for p in error.absolute_path)
            messages.append(f"{path}: {error.message}" if path else error.message)
        return messages
