"""Access to the DynamoDB-style key/value table that backs the stores."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Protocol

from .models import BaseEntity

DB_REGION = "eu-west-1"
LOCAL_DYNAMODB_URL = "http://localhost:8000"

USER_TABLE_DEFINITION: dict[str, Any] = {
    "TableName": "user",
    "AttributeDefinitions": [
        {"AttributeName": "PK", "AttributeType": "S"},
        {"AttributeName": "SK", "AttributeType": "S"},
    ],
    "KeySchema": [
        {"AttributeName": "PK", "KeyType": "HASH"},
        {"AttributeName": "SK", "KeyType": "RANGE"},
    ],
    "ProvisionedThroughput": {"ReadCapacityUnits": 10, "WriteCapacityUnits": 10},
}

_log = logging.getLogger(__name__)


class StoreError(Exception):
    """A request to the table failed."""


class NotFoundError(StoreError):
    """The requested record does not exist."""

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


class _ServiceError(Exception):
    code = ""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ProvisionedThroughputExceededError(_ServiceError):
    """Raised by a table client when its throughput limit is hit."""

    code = "ProvisionedThroughputExceededException"


class InternalServerError(_ServiceError):
    """Raised by a table client when the service fails internally."""

    code = "InternalServerError"


class DynamoDBer(Protocol):
    """Low-level table client taking keyword requests and returning dict responses."""

    def get_item(self, **request: Any) -> dict[str, Any] | None: ...

    def batch_get_item(self, **request: Any) -> dict[str, Any] | None: ...

    def query(self, **request: Any) -> dict[str, Any] | None: ...

    def put_item(self, **request: Any) -> dict[str, Any] | None: ...

    def update_item(self, **request: Any) -> dict[str, Any] | None: ...


class Storer(Protocol):
    """High-level record access used by the entity stores."""

    def get(self, table_name: str, pk: str, sk: str) -> dict[str, Any]: ...

    def batch_get(self, table_name: str, pk: str, sks: list[str]) -> list[dict[str, Any]]: ...

    def query(self, table_name: str, expression: Expression) -> list[dict[str, Any]]: ...

    def put(self, table_name: str, body: Any) -> None: ...

    def update(self, table_name: str, pk: str, sk: str, expression: Expression) -> dict[str, Any]: ...


# Attribute value conversion -------------------------------------------------


def marshal_value(value: Any) -> dict[str, Any]:
    """Convert a Python value to a typed attribute value."""
    if isinstance(value, Enum):
        value = value.value
    if value is None:
        return {"NULL": True}
    if isinstance(value, bool):
        return {"BOOL": value}
    if isinstance(value, (int, float, Decimal)):
        return {"N": str(value)}
    if isinstance(value, str):
        return {"S": value}
    if isinstance(value, (bytes, bytearray)):
        return {"B": bytes(value)}
    if isinstance(value, datetime):
        return {"S": value.isoformat()}
    if isinstance(value, (set, frozenset)):
        if all(isinstance(v, str) for v in value):
            return {"SS": sorted(value)}
        if all(isinstance(v, (int, float, Decimal)) and not isinstance(v, bool) for v in value):
            return {"NS": sorted(str(v) for v in value)}
        raise TypeError("sets must hold only strings or only numbers")
    if isinstance(value, (list, tuple)):
        return {"L": [marshal_value(v) for v in value]}
    if isinstance(value, (Mapping, BaseEntity)) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    ):
        return {"M": marshal_map(value)}
    raise TypeError(f"cannot marshal value of type {type(value).__name__}")


def _parse_number(text: str) -> int | Decimal:
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return Decimal(text)
    except InvalidOperation as err:
        raise ValueError(f"invalid number {text!r}") from err


def unmarshal_value(av: Mapping[str, Any]) -> Any:
    """Convert a typed attribute value to a Python value."""
    if not isinstance(av, Mapping) or len(av) != 1:
        raise ValueError(f"invalid attribute value: {av!r}")
    ((kind, data),) = av.items()
    if kind == "S":
        return data
    if kind == "N":
        return _parse_number(data)
    if kind == "BOOL":
        return bool(data)
    if kind == "NULL":
        return None
    if kind == "B":
        return bytes(data)
    if kind == "M":
        return unmarshal_map(data)
    if kind == "L":
        return [unmarshal_value(v) for v in data]
    if kind == "SS":
        return set(data)
    if kind == "NS":
        return {_parse_number(v) for v in data}
    if kind == "BS":
        return {bytes(v) for v in data}
    raise ValueError(f"unknown attribute value type {kind!r}")


def marshal_map(obj: Any) -> dict[str, dict[str, Any]]:
    """Convert a record, mapping or dataclass to a map of attribute values."""
    if isinstance(obj, BaseEntity):
        data: Mapping[str, Any] = obj.to_item()
    elif isinstance(obj, Mapping):
        data = obj
    elif dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        data = {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    else:
        raise TypeError(f"cannot marshal {type(obj).__name__} as a map")
    return {str(key): marshal_value(value) for key, value in data.items()}


def unmarshal_map(item: Mapping[str, Mapping[str, Any]]) -> dict[str, Any]:
    """Convert a map of attribute values to a plain dict."""
    if not isinstance(item, Mapping):
        raise ValueError(f"invalid attribute map: {item!r}")
    return {key: unmarshal_value(value) for key, value in item.items()}


# Expressions ----------------------------------------------------------------


@dataclass(frozen=True)
class Name:
    """An attribute name in an expression."""

    name: str

    def if_not_exists(self, value: Any) -> IfNotExists:
        """Operand that keeps the current value, or sets ``value`` when absent."""
        return IfNotExists(self, value if isinstance(value, Value) else Value(value))


@dataclass(frozen=True)
class Value:
    """A literal value in an expression."""

    value: Any


@dataclass(frozen=True)
class IfNotExists:
    name: Name
    value: Value


def _as_name(name: str | Name) -> Name:
    return name if isinstance(name, Name) else Name(name)


@dataclass(frozen=True)
class UpdateBuilder:
    """An ordered list of SET actions; each ``set`` returns a new builder."""

    actions: tuple[tuple[Name, Name | Value | IfNotExists], ...] = ()

    def set(self, name: str | Name, operand: Any) -> UpdateBuilder:
        if not isinstance(operand, (Name, Value, IfNotExists)):
            operand = Value(operand)
        return UpdateBuilder(self.actions + ((_as_name(name), operand),))


@dataclass
class Expression:
    """A built expression with its placeholder names and values."""

    names: dict[str, str] = field(default_factory=dict)
    values: dict[str, dict[str, Any]] = field(default_factory=dict)
    key_condition: str | None = None
    projection: str | None = None
    update: str | None = None


class _Aliases:
    def __init__(self) -> None:
        self.names: dict[str, str] = {}
        self.values: dict[str, dict[str, Any]] = {}
        self._by_name: dict[str, str] = {}

    def name(self, name: Name) -> str:
        alias = self._by_name.get(name.name)
        if alias is None:
            alias = f"#{len(self._by_name)}"
            self._by_name[name.name] = alias
            self.names[alias] = name.name
        return alias

    def value(self, value: Value) -> str:
        alias = f":{len(self.values)}"
        self.values[alias] = marshal_value(value.value)
        return alias

    def operand(self, operand: Name | Value | IfNotExists) -> str:
        if isinstance(operand, Name):
            return self.name(operand)
        if isinstance(operand, Value):
            return self.value(operand)
        return f"if_not_exists({self.name(operand.name)}, {self.value(operand.value)})"


@dataclass(frozen=True)
class ExpressionBuilder:
    """Collects the parts of an expression; ``build`` assigns placeholders."""

    update_builder: UpdateBuilder | None = None
    key: tuple[Name, Value] | None = None
    projected: tuple[Name, ...] | None = None

    def with_update(self, update: UpdateBuilder) -> ExpressionBuilder:
        return dataclasses.replace(self, update_builder=update)

    def with_key_condition(self, key: str | Name, value: Any) -> ExpressionBuilder:
        if not isinstance(value, Value):
            value = Value(value)
        return dataclasses.replace(self, key=(_as_name(key), value))

    def with_projection(self, *args: str | Name) -> ExpressionBuilder:
        return dataclasses.replace(self, projected=tuple(_as_name(a) for a in args))

    def build(self) -> Expression:
        if self.update_builder is None and self.key is None and self.projected is None:
            raise ValueError("unset parameter: ExpressionBuilder")
        aliases = _Aliases()
        key_condition = projection = update = None
        if self.key is not None:
            name, value = self.key
            key_condition = f"{aliases.name(name)} = {aliases.value(value)}"
        if self.projected is not None:
            if not self.projected:
                raise ValueError("unset parameter: projection")
            projection = ", ".join(aliases.name(n) for n in self.projected)
        if self.update_builder is not None:
            if not self.update_builder.actions:
                raise ValueError("unset parameter: UpdateBuilder")
            update = "SET " + ", ".join(
                f"{aliases.name(name)} = {aliases.operand(operand)}"
                for name, operand in self.update_builder.actions
            )
        return Expression(
            names=aliases.names,
            values=aliases.values,
            key_condition=key_condition,
            projection=projection,
            update=update,
        )


# Store ----------------------------------------------------------------------


def _key(pk: str, sk: str) -> dict[str, dict[str, str]]:
    return {"PK": {"S": pk}, "SK": {"S": sk}}


def _compact(request: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in request.items() if v is not None and v != {}}


def _failure_message(err: Exception) -> str:
    if isinstance(err, ProvisionedThroughputExceededError):
        return "error dynamodb throughput exceeded"
    if isinstance(err, InternalServerError):
        return "internal server error from dynamodb"
    return "error getting item from dynamodb"


class Store:
    """Reads and writes plain records through a low-level table client."""

    def __init__(self, db: DynamoDBer) -> None:
        self._db = db

    def _call(self, method: Any, extra: dict[str, Any], **request: Any) -> Any:
        try:
            result = method(**request)
        except Exception as err:
            _log.error("%s: %s", _failure_message(err), err, extra=extra)
            raise StoreError(f"error returned from dynamodb {err}") from err
        return result

    @staticmethod
    def _checked(result: Any, extra: dict[str, Any]) -> Mapping[str, Any]:
        if result is None:
            _log.error("nil results returned", extra=extra)
            raise StoreError("nil results returned")
        return result

    @staticmethod
    def _decode(convert: Any, data: Any, extra: dict[str, Any]) -> Any:
        try:
            return convert(data)
        except (ValueError, TypeError) as err:
            _log.error("error unmarshalling dynamodb data: %s", err, extra=extra)
            raise StoreError(f"error unmarshalling dynamodb data, {err}") from err

    @staticmethod
    def _decode_list(items: Any) -> list[dict[str, Any]]:
        return [unmarshal_map(item) for item in items]

    def get(self, table_name: str, pk: str, sk: str) -> dict[str, Any]:
        """Return the record under ``pk``/``sk``; raise NotFoundError if absent."""
        extra = {"pk": pk, "sk": sk}
        result = self._call(
            self._db.get_item, extra, TableName=table_name, Key=_key(pk, sk)
        )
        result = self._checked(result, extra)
        item = result.get("Item")
        if item is None:
            _log.info("No %s records found", table_name, extra=extra)
            raise NotFoundError()
        return self._decode(unmarshal_map, item, extra)

    def batch_get(self, table_name: str, pk: str, sks: list[str]) -> list[dict[str, Any]]:
        """Return the records under ``pk`` for each of the sort keys found."""
        extra = {"pk": pk}
        keys = [_key(pk, sk) for sk in sks]
        result = self._call(
            self._db.batch_get_item, extra,
            RequestItems={table_name: {"Keys": keys}},
        )
        result = self._checked(result, extra)
        items = (result.get("Responses") or {}).get(table_name) or []
        return self._decode(self._decode_list, items, extra)

    def query(self, table_name: str, expression: Expression) -> list[dict[str, Any]]:
        """Return the records matching the expression's key condition."""
        extra: dict[str, Any] = {}
        request = _compact({
            "KeyConditionExpression": expression.key_condition,
            "ProjectionExpression": expression.projection,
            "ExpressionAttributeNames": expression.names,
            "ExpressionAttributeValues": expression.values,
            "TableName": table_name,
        })
        result = self._call(self._db.query, extra, **request)
        result = self._checked(result, extra)
        return self._decode(self._decode_list, result.get("Items") or [], extra)

    def put(self, table_name: str, body: Any) -> None:
        """Write ``body`` as a whole record."""
        try:
            item = marshal_map(body)
        except (TypeError, ValueError) as err:
            raise StoreError(f"failed to marshal Record, {err}") from err
        self._call(self._db.put_item, {}, TableName=table_name, Item=item)

    def update(self, table_name: str, pk: str, sk: str, expression: Expression) -> dict[str, Any]:
        """Apply the update expression and return the updated attributes."""
        extra = {"pk": pk, "sk": sk}
        request = _compact({
            "Key": _key(pk, sk),
            "TableName": table_name,
            "ExpressionAttributeNames": expression.names,
            "ExpressionAttributeValues": expression.values,
            "ReturnValues": "UPDATED_NEW",
            "UpdateExpression": expression.update,
        })
        result = self._call(self._db.update_item, extra, **request)
        result = self._checked(result, extra)
        return self._decode(unmarshal_map, result.get("Attributes") or {}, extra)