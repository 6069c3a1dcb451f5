# Copyright 2024-present MongoDB, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""Functions and classes common to multiple modules."""
from __future__ import annotations

from collections.abc import MutableMapping as abc_MutableMapping
from typing import Any, Mapping, Optional, Sequence, Union

from bson.raw_bson import RawBSONDocument
from mongobulk.errors import ConfigurationError, InvalidOperation

# Defaults until we connect to a server and get updated limits.
MAX_BSON_SIZE = 16 * (1024**2)
MAX_WRITE_BATCH_SIZE = 100000

# What the server allows as the largest message, not including the header.
MAX_MESSAGE_SIZE = 48000000

# Bytes kept free in each bulkWrite message for the command document itself.
BULK_WRITE_MESSAGE_OVERHEAD = 1000

# Extra room the server grants a command document beyond maxBsonObjectSize.
COMMAND_OVERHEAD = 16382


def validate_boolean(option: str, value: Any) -> bool:
    """Validates that 'value' is True or False."""
    if isinstance(value, bool):
        return value
    raise TypeError(f"{option} must be True or False, was: {option}={value}")


def validate_boolean_or_none(option: str, value: Any) -> Optional[bool]:
    if value is None:
        return value
    return validate_boolean(option, value)


def validate_integer(option: str, value: Any) -> int:
    """Validates that 'value' is an integer."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise TypeError(f"Wrong type for {option}, value must be an integer, not {type(value)}")


def validate_positive_integer(option: str, value: Any) -> int:
    """Validate that 'value' is a positive integer, which does not include 0."""
    val = validate_integer(option, value)
    if val <= 0:
        raise ConfigurationError(f"The value of {option} must be a positive integer")
    return val


def validate_non_negative_integer(option: str, value: Any) -> int:
    """Validate that 'value' is a positive integer or 0."""
    val = validate_integer(option, value)
    if val < 0:
        raise ConfigurationError(f"The value of {option} must be a non negative integer")
    return val


def validate_timeout_or_none(option: str, value: Any) -> Optional[float]:
    """Validates a timeout specified in seconds, or None."""
    if value is None:
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{option} must be an int or float, not {type(value)}")
    if value < 0:
        raise ValueError(f"{option} cannot be negative")
    return float(value)


def validate_is_mapping(option: str, value: Any) -> None:
    """Validate the type of method arguments that expect a document."""
    if not isinstance(value, Mapping):
        raise TypeError(
            f"{option} must be an instance of dict, bson.son.SON, or "
            f"any other type that inherits from "
            f"collections.Mapping, not {type(value)}"
        )


def validate_is_document_type(option: str, value: Any) -> None:
    """Validate the type of method arguments that expect a MongoDB document."""
    if not isinstance(value, (abc_MutableMapping, RawBSONDocument)):
        raise TypeError(
            f"{option} must be an instance of dict, bson.son.SON, "
            "bson.raw_bson.RawBSONDocument, or "
            "a type that inherits from "
            f"collections.MutableMapping, not {type(value)}"
        )


def validate_list(option: str, value: Any) -> list:
    """Validates that 'value' is a list."""
    if not isinstance(value, list):
        raise TypeError(f"{option} must be a list, not {type(value)}")
    return value


def validate_list_or_none(option: Any, value: Any) -> Optional[list]:
    """Validates that 'value' is a list or None."""
    if value is None:
        return value
    return validate_list(option, value)


def validate_ok_for_replace(replacement: Mapping[str, Any]) -> None:
    """Validate a replacement document."""
    validate_is_mapping("replacement", replacement)
    # Replacement can be {}
    if replacement and not isinstance(replacement, RawBSONDocument):
        first = next(iter(replacement))
        if first.startswith("$"):
            raise ValueError("replacement can not include $ operators")


def validate_ok_for_update(update: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]) -> None:
    """Validate an update document."""
    if isinstance(update, list):
        # Update can be a pipeline of stages.
        for stage in update:
            validate_is_mapping("update pipeline stage", stage)
        if not update:
            raise ValueError("update cannot be an empty list")
        return
    validate_is_mapping("update", update)
    # Update cannot be {}.
    if not update:
        raise ValueError("update cannot be empty")

    is_document = not isinstance(update, RawBSONDocument)
    first = next(iter(update))
    if is_document and not first.startswith("$"):
        raise ValueError("update only works with $ operators")


def validate_namespace(namespace: Any) -> str:
    """Validate a '<database>.<collection>' namespace string."""
    if namespace is None:
        raise InvalidOperation(
            "MongoBulkClient.bulk_write requires a namespace to be provided "
            "for each write operation"
        )
    if not isinstance(namespace, str):
        raise TypeError(f"namespace must be an instance of str, not {type(namespace)}")
    db_name, _, coll_name = namespace.partition(".")
    if not db_name or not coll_name:
        raise InvalidOperation(
            f"namespace must be of the form '<database>.<collection>', not {namespace!r}"
        )
    return namespace
