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

"""Write model class definitions."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from mongobulk.common import (
    validate_boolean,
    validate_is_document_type,
    validate_is_mapping,
    validate_list,
    validate_namespace,
    validate_ok_for_replace,
    validate_ok_for_update,
)
from mongobulk.typings import _DocumentOut, _Hint, _Pipeline

if TYPE_CHECKING:
    from mongobulk.client_bulk import _ClientBulk


def _validate_hint(hint: Optional[_Hint]) -> Optional[_Hint]:
    if hint is None or isinstance(hint, str):
        return hint
    validate_is_mapping("hint", hint)
    return hint


def _validate_namespace_or_none(namespace: Optional[str]) -> Optional[str]:
    if namespace is None:
        return namespace
    return validate_namespace(namespace)


class InsertOne:
    """Represents an insert_one operation."""

    __slots__ = ("_doc", "_namespace")

    def __init__(self, document: _DocumentOut, namespace: Optional[str] = None) -> None:
        """Create an InsertOne instance.

        For use with :meth:`~mongobulk.mongo_client.MongoBulkClient.bulk_write`.

        :param document: The document to insert. If the document is missing an
            _id field one will be generated for the command, leaving `document`
            untouched.
        :param namespace: The namespace in which the insert should
            occur, as ``"<database>.<collection>"``.
        """
        validate_is_document_type("document", document)
        self._doc = document
        self._namespace = _validate_namespace_or_none(namespace)

    @property
    def document(self) -> _DocumentOut:
        return self._doc

    @property
    def namespace(self) -> Optional[str]:
        return self._namespace

    def _add_to_client_bulk(self, bulkobj: _ClientBulk) -> None:
        """Add this operation to the _ClientBulk instance `bulkobj`."""
        bulkobj.add_insert(validate_namespace(self._namespace), self._doc)

    def __repr__(self) -> str:
        if self._namespace:
            return f"{self.__class__.__name__}({self._doc!r}, {self._namespace!r})"
        return f"{self.__class__.__name__}({self._doc!r})"

    def __eq__(self, other: Any) -> bool:
        if type(other) == type(self):
            return (other._doc, other._namespace) == (self._doc, self._namespace)
        return NotImplemented

    def __ne__(self, other: Any) -> bool:
        return not self == other


class _DeleteOp:
    """Private base class for delete operations."""

    __slots__ = ("_filter", "_collation", "_hint", "_namespace")

    def __init__(
        self,
        filter: Mapping[str, Any],
        collation: Optional[Mapping[str, Any]] = None,
        hint: Optional[_Hint] = None,
        namespace: Optional[str] = None,
    ) -> None:
        validate_is_mapping("filter", filter)
        if collation is not None:
            validate_is_mapping("collation", collation)
        self._filter = filter
        self._collation = collation
        self._hint = _validate_hint(hint)
        self._namespace = _validate_namespace_or_none(namespace)

    @property
    def filter(self) -> Mapping[str, Any]:
        return self._filter

    @property
    def namespace(self) -> Optional[str]:
        return self._namespace

    def __eq__(self, other: Any) -> bool:
        if type(other) == type(self):
            return (other._filter, other._collation, other._hint, other._namespace) == (
                self._filter,
                self._collation,
                self._hint,
                self._namespace,
            )
        return NotImplemented

    def __ne__(self, other: Any) -> bool:
        return not self == other

    def __repr__(self) -> str:
        if self._namespace:
            return "{}({!r}, {!r}, {!r}, {!r})".format(
                self.__class__.__name__,
                self._filter,
                self._collation,
                self._hint,
                self._namespace,
            )
        return f"{self.__class__.__name__}({self._filter!r}, {self._collation!r}, {self._hint!r})"


class DeleteOne(_DeleteOp):
    """Represents a delete_one operation."""

    __slots__ = ()

    def __init__(
        self,
        filter: Mapping[str, Any],
        collation: Optional[Mapping[str, Any]] = None,
        hint: Optional[_Hint] = None,
        namespace: Optional[str] = None,
    ) -> None:
        """Create a DeleteOne instance.

        For use with :meth:`~mongobulk.mongo_client.MongoBulkClient.bulk_write`.

        :param filter: A query that matches the document to delete.
        :param collation: An instance of ``Collation``, as a document.
        :param hint: An index to use to support the query predicate,
            either an index name or a key pattern document.
        :param namespace: The namespace in which the delete should occur.
        """
        super().__init__(filter, collation, hint, namespace)

    def _add_to_client_bulk(self, bulkobj: _ClientBulk) -> None:
        """Add this operation to the _ClientBulk instance `bulkobj`."""
        bulkobj.add_delete(
            validate_namespace(self._namespace),
            self._filter,
            multi=False,
            collation=self._collation,
            hint=self._hint,
        )


class DeleteMany(_DeleteOp):
    """Represents a delete_many operation."""

    __slots__ = ()

    def __init__(
        self,
        filter: Mapping[str, Any],
        collation: Optional[Mapping[str, Any]] = None,
        hint: Optional[_Hint] = None,
        namespace: Optional[str] = None,
    ) -> None:
        """Create a DeleteMany instance.

        For use with :meth:`~mongobulk.mongo_client.MongoBulkClient.bulk_write`.

        :param filter: A query that matches the documents to delete.
        :param collation: An instance of ``Collation``, as a document.
        :param hint: An index to use to support the query predicate.
        :param namespace: The namespace in which the deletes should occur.
        """
        super().__init__(filter, collation, hint, namespace)

    def _add_to_client_bulk(self, bulkobj: _ClientBulk) -> None:
        """Add this operation to the _ClientBulk instance `bulkobj`."""
        bulkobj.add_delete(
            validate_namespace(self._namespace),
            self._filter,
            multi=True,
            collation=self._collation,
            hint=self._hint,
        )


class ReplaceOne:
    """Represents a replace_one operation."""

    __slots__ = (
        "_filter",
        "_doc",
        "_upsert",
        "_collation",
        "_hint",
        "_namespace",
        "_sort",
    )

    def __init__(
        self,
        filter: Mapping[str, Any],
        replacement: Mapping[str, Any],
        upsert: Optional[bool] = None,
        collation: Optional[Mapping[str, Any]] = None,
        hint: Optional[_Hint] = None,
        namespace: Optional[str] = None,
        sort: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Create a ReplaceOne instance.

        For use with :meth:`~mongobulk.mongo_client.MongoBulkClient.bulk_write`.

        :param filter: A query that matches the document to replace.
        :param replacement: The new document.
        :param upsert: If ``True``, perform an insert if no documents
            match the filter.
        :param collation: An instance of ``Collation``, as a document.
        :param hint: An index to use to support the query predicate.
        :param namespace: The namespace in which the replace should occur.
        :param sort: Specify which document the operation updates if the query
            matches multiple documents. The first document matched by the sort
            order will be updated.
        """
        validate_is_mapping("filter", filter)
        validate_ok_for_replace(replacement)
        if upsert is not None:
            validate_boolean("upsert", upsert)
        if collation is not None:
            validate_is_mapping("collation", collation)
        if sort is not None:
            validate_is_mapping("sort", sort)
        self._filter = filter
        self._doc = replacement
        self._upsert = upsert
        self._collation = collation
        self._hint = _validate_hint(hint)
        self._namespace = _validate_namespace_or_none(namespace)
        self._sort = sort

    @property
    def filter(self) -> Mapping[str, Any]:
        return self._filter

    @property
    def replacement(self) -> Mapping[str, Any]:
        return self._doc

    @property
    def namespace(self) -> Optional[str]:
        return self._namespace

    def _add_to_client_bulk(self, bulkobj: _ClientBulk) -> None:
        """Add this operation to the _ClientBulk instance `bulkobj`."""
        bulkobj.add_replace(
            validate_namespace(self._namespace),
            self._filter,
            self._doc,
            self._upsert,
            collation=self._collation,
            hint=self._hint,
            sort=self._sort,
        )

    def __eq__(self, other: Any) -> bool:
        if type(other) == type(self):
            return (
                other._filter,
                other._doc,
                other._upsert,
                other._collation,
                other._hint,
                other._namespace,
                other._sort,
            ) == (
                self._filter,
                self._doc,
                self._upsert,
                self._collation,
                self._hint,
                self._namespace,
                self._sort,
            )
        return NotImplemented

    def __ne__(self, other: Any) -> bool:
        return not self == other

    def __repr__(self) -> str:
        if self._namespace:
            return "{}({!r}, {!r}, {!r}, {!r}, {!r}, {!r}, {!r})".format(
                self.__class__.__name__,
                self._filter,
                self._doc,
                self._upsert,
                self._collation,
                self._hint,
                self._namespace,
                self._sort,
            )
        return "{}({!r}, {!r}, {!r}, {!r}, {!r}, {!r})".format(
            self.__class__.__name__,
            self._filter,
            self._doc,
            self._upsert,
            self._collation,
            self._hint,
            self._sort,
        )


class _UpdateOp:
    """Private base class for update operations."""

    __slots__ = (
        "_filter",
        "_doc",
        "_upsert",
        "_collation",
        "_array_filters",
        "_hint",
        "_namespace",
        "_sort",
    )

    def __init__(
        self,
        filter: Mapping[str, Any],
        doc: Union[Mapping[str, Any], _Pipeline],
        upsert: Optional[bool],
        collation: Optional[Mapping[str, Any]],
        array_filters: Optional[list[Mapping[str, Any]]],
        hint: Optional[_Hint],
        namespace: Optional[str],
        sort: Optional[Mapping[str, Any]],
    ) -> None:
        validate_is_mapping("filter", filter)
        validate_ok_for_update(doc)
        if upsert is not None:
            validate_boolean("upsert", upsert)
        if collation is not None:
            validate_is_mapping("collation", collation)
        if array_filters is not None:
            validate_list("array_filters", array_filters)
        if sort is not None:
            validate_is_mapping("sort", sort)
        self._filter = filter
        self._doc = doc
        self._upsert = upsert
        self._collation = collation
        self._array_filters = array_filters
        self._hint = _validate_hint(hint)
        self._namespace = _validate_namespace_or_none(namespace)
        self._sort = sort

    @property
    def filter(self) -> Mapping[str, Any]:
        return self._filter

    @property
    def update(self) -> Union[Mapping[str, Any], _Pipeline]:
        return self._doc

    @property
    def namespace(self) -> Optional[str]:
        return self._namespace

    def __eq__(self, other: object) -> bool:
        if isinstance(other, type(self)):
            return (
                other._filter,
                other._doc,
                other._upsert,
                other._collation,
                other._array_filters,
                other._hint,
                other._namespace,
                other._sort,
            ) == (
                self._filter,
                self._doc,
                self._upsert,
                self._collation,
                self._array_filters,
                self._hint,
                self._namespace,
                self._sort,
            )
        return NotImplemented

    def __ne__(self, other: Any) -> bool:
        return not self == other

    def __repr__(self) -> str:
        fields = [
            self._filter,
            self._doc,
            self._upsert,
            self._collation,
            self._array_filters,
            self._hint,
        ]
        if self._namespace:
            fields.append(self._namespace)
        fields.append(self._sort)
        return "{}({})".format(self.__class__.__name__, ", ".join(repr(f) for f in fields))


class UpdateOne(_UpdateOp):
    """Represents an update_one operation."""

    __slots__ = ()

    def __init__(
        self,
        filter: Mapping[str, Any],
        update: Union[Mapping[str, Any], _Pipeline],
        upsert: Optional[bool] = None,
        collation: Optional[Mapping[str, Any]] = None,
        array_filters: Optional[list[Mapping[str, Any]]] = None,
        hint: Optional[_Hint] = None,
        namespace: Optional[str] = None,
        sort: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Represents an update_one operation.

        For use with :meth:`~mongobulk.mongo_client.MongoBulkClient.bulk_write`.

        :param filter: A query that matches the document to update.
        :param update: The modifications to apply, or an aggregation pipeline.
        :param upsert: If ``True``, perform an insert if no documents
            match the filter.
        :param collation: An instance of ``Collation``, as a document.
        :param array_filters: A list of filters specifying which
            array elements an update should apply.
        :param hint: An index to use to support the query predicate.
        :param namespace: The namespace in which the update should occur.
        :param sort: Specify which document the operation updates if the query
            matches multiple documents.
        """
        super().__init__(filter, update, upsert, collation, array_filters, hint, namespace, sort)

    def _add_to_client_bulk(self, bulkobj: _ClientBulk) -> None:
        """Add this operation to the _ClientBulk instance `bulkobj`."""
        bulkobj.add_update(
            validate_namespace(self._namespace),
            self._filter,
            self._doc,
            False,
            self._upsert,
            collation=self._collation,
            array_filters=self._array_filters,
            hint=self._hint,
            sort=self._sort,
        )


class UpdateMany(_UpdateOp):
    """Represents an update_many operation."""

    __slots__ = ()

    def __init__(
        self,
        filter: Mapping[str, Any],
        update: Union[Mapping[str, Any], _Pipeline],
        upsert: Optional[bool] = None,
        collation: Optional[Mapping[str, Any]] = None,
        array_filters: Optional[list[Mapping[str, Any]]] = None,
        hint: Optional[_Hint] = None,
        namespace: Optional[str] = None,
    ) -> None:
        """Create an UpdateMany instance.

        For use with :meth:`~mongobulk.mongo_client.MongoBulkClient.bulk_write`.

        :param filter: A query that matches the documents to update.
        :param update: The modifications to apply, or an aggregation pipeline.
        :param upsert: If ``True``, perform an insert if no documents
            match the filter.
        :param collation: An instance of ``Collation``, as a document.
        :param array_filters: A list of filters specifying which
            array elements an update should apply.
        :param hint: An index to use to support the query predicate.
        :param namespace: The namespace in which the updates should occur.
        """
        super().__init__(filter, update, upsert, collation, array_filters, hint, namespace, None)

    def _add_to_client_bulk(self, bulkobj: _ClientBulk) -> None:
        """Add this operation to the _ClientBulk instance `bulkobj`."""
        bulkobj.add_update(
            validate_namespace(self._namespace),
            self._filter,
            self._doc,
            True,
            self._upsert,
            collation=self._collation,
            array_filters=self._array_filters,
            hint=self._hint,
        )


_WriteModel = Union[InsertOne, DeleteOne, DeleteMany, ReplaceOne, UpdateOne, UpdateMany]
