"""
Function Registry - the dispatch table for model-callable functions.

Built once at startup, then frozen. After freezing the registry is never
mutated, so concurrent orchestrations can share it without locking.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator

from chatcore.config.logging import get_logger
from chatcore.functions.base import FunctionBody, FunctionDescriptor
from chatcore.functions.validation import JsonSchemaValidator, SchemaValidator

logger = get_logger(__name__)


class FunctionRegistry:
    """
    Holds function descriptors and their executable bodies, keyed by name.

    Args:
        validator: Schema validator used to check parameter schemas at
                   registration and arguments at dispatch
                   (default: JsonSchemaValidator)
    """

    def __init__(self, validator: SchemaValidator | None = None):
        self._validator: SchemaValidator = validator or JsonSchemaValidator()
        self._descriptors: dict[str, FunctionDescriptor] = {}
        self._executables: dict[str, FunctionBody] = {}
        self._frozen = False

    @property
    def validator(self) -> SchemaValidator:
        return self._validator

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(
        self,
        descriptor: FunctionDescriptor,
        executable: FunctionBody | None = None,
    ) -> None:
        """
        Register a function.

        Args:
            descriptor: Name, description, parameter schema and no-op flag
            executable: Body called as ``executable(context, args)``; may be
                        sync or async. May be None only for no-ops.

        Raises:
            RuntimeError: If the registry is frozen
            ValueError: On a duplicate name, a missing body for a non-no-op
                        function, or an invalid parameter schema
        """
        if self._frozen:
            raise RuntimeError(
                f"cannot register {descriptor.name!r}: function registry is frozen"
            )
        if descriptor.name in self._descriptors:
            raise ValueError(f"function {descriptor.name!r} is already registered")
        if executable is None and not descriptor.is_no_op:
            raise ValueError(
                f"function {descriptor.name!r} needs an executable unless it is a no-op"
            )
        self._validator.check_schema(descriptor.parameters)

        self._descriptors[descriptor.name] = descriptor
        if executable is not None:
            self._executables[descriptor.name] = executable
        logger.debug(
            f"Registered function {descriptor.name}"
            + (" (no-op)" if descriptor.is_no_op else "")
        )

    def freeze(self) -> FunctionRegistry:
        """Make the registry read-only. Returns self for chaining."""
        self._frozen = True
        return self

    def lookup(self, name: str) -> FunctionDescriptor | None:
        return self._descriptors.get(name)

    def executable(self, name: str) -> FunctionBody | None:
        return self._executables.get(name)

    def descriptors(self) -> list[FunctionDescriptor]:
        """All descriptors in registration order."""
        return list(self._descriptors.values())

    def names(self) -> list[str]:
        return list(self._descriptors)

    def describe_for_provider(
        self, enabled_names: Iterable[str] | None = None
    ) -> list[dict[str, Any]]:
        """
        Format every registered function for the provider's ``functions`` field.

        Functions outside ``enabled_names`` stay listed, with their
        description prefixed by ``DEPRECATED:``, so the model knows they
        exist but should not be used.

        Args:
            enabled_names: Names to present normally; None enables all
        """
        enabled = None if enabled_names is None else set(enabled_names)
        return [
            descriptor.to_provider(
                deprecated=enabled is not None and descriptor.name not in enabled
            )
            for descriptor in self._descriptors.values()
        ]

    def validate_arguments(self, name: str, args: Any) -> list[str]:
        """
        Validate ``args`` against the named function's parameter schema.

        Returns:
            Error messages; empty when the arguments are valid
        """
        descriptor = self.lookup(name)
        if descriptor is None:
            return [f"unknown function {name}"]
        return self._validator.validate(descriptor.parameters, args)

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[FunctionDescriptor]:
        return iter(self.descriptors())
