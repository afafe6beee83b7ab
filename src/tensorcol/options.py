"""Evaluation options for column evaluation."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, fields
from typing import Any

import numpy as np

from .errors import OptionsError


@dataclass(frozen=True)
class EvaluationOptions:
    """Quantities to compute when evaluating a column.

    Attributes:
        value (bool): Compute basis function values. Defaults to True.
        gradient (bool): Compute physical gradients. Defaults to True.
        hessian (bool): Compute physical Hessians. Defaults to False.
    """

    value: bool = True
    gradient: bool = True
    hessian: bool = False

    @classmethod
    def option_names(cls) -> tuple[str, ...]:
        """Get the recognized option keys."""
        return tuple(field.name for field in fields(cls))

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> EvaluationOptions:
        """Create options from a mapping of option names to booleans.

        Keys are matched case-insensitively.

        Args:
            options (Mapping[str, Any]): Option names and values.

        Returns:
            EvaluationOptions: The parsed options, with defaults for missing keys.

        Raises:
            OptionsError: If a key is not a string or is unknown, or if a value
                is not a boolean.
        """
        known = cls.option_names()
        parsed: dict[str, bool] = {}
        for key, value in options.items():
            if not isinstance(key, str):
                raise OptionsError(f"Option keys must be strings, got {key!r}")
            name = key.lower()
            if name not in known:
                raise OptionsError(f"Unknown option {key!r}; expected one of {known}")
            if not isinstance(value, (bool, np.bool_)):
                raise OptionsError(f"Option {key!r} must be a boolean, got {value!r}")
            parsed[name] = bool(value)
        return cls(**parsed)

    @classmethod
    def from_option_list(cls, options: Sequence[Any]) -> EvaluationOptions:
        """Create options from a flat ``[name, value, name, value, ...]`` sequence.

        Args:
            options (Sequence[Any]): Flat sequence of option names and values.

        Returns:
            EvaluationOptions: The parsed options. Later occurrences of a key
            override earlier ones.

        Raises:
            OptionsError: If the sequence has odd length, or on any error raised
                by :meth:`from_mapping`.

        Example:
            >>> EvaluationOptions.from_option_list(["hessian", True, "value", False])
            EvaluationOptions(value=False, gradient=True, hessian=True)
        """
        if len(options) % 2 != 0:
            raise OptionsError("Options must be passed in the [option, value] format")
        pairs: dict[str, Any] = {}
        for key, value in zip(options[::2], options[1::2], strict=True):
            if not isinstance(key, str):
                raise OptionsError(f"Option keys must be strings, got {key!r}")
            pairs[key.lower()] = value
        return cls.from_mapping(pairs)


def resolve_evaluation_options(
    options: EvaluationOptions | Mapping[str, Any] | Sequence[Any] | None,
) -> EvaluationOptions:
    """Validate and normalize the options given to a column evaluation.

    Args:
        options (EvaluationOptions | Mapping[str, Any] | Sequence[Any] | None):
            Either an already built ``EvaluationOptions``, a mapping, a flat
            key/value sequence, or None for the defaults.

    Returns:
        EvaluationOptions: The validated options.

    Raises:
        OptionsError: If the options are malformed.
    """
    if options is None:
        return EvaluationOptions()
    if isinstance(options, EvaluationOptions):
        return options
    if isinstance(options, Mapping):
        return EvaluationOptions.from_mapping(options)
    if isinstance(options, Sequence) and not isinstance(options, (str, bytes)):
        return EvaluationOptions.from_option_list(options)
    raise OptionsError(f"Unsupported options type: {type(options).__name__}")


__all__ = ["EvaluationOptions", "resolve_evaluation_options"]
