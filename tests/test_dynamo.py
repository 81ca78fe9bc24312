from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from mindhub.dynamo import (
    ExpressionBuilder,
    InternalServerError,
    Name,
    NotFoundError,
    ProvisionedThroughputExceededError,
    Store,
    StoreError,
    UpdateBuilder,
    Value,
    marshal_map,
    marshal_value,
    unmarshal_map,
    unmarshal_value,
)
from mindhub.models import Note

TABLE = "abcde"
PK = "pkvalue123"
SK = "skvalue123"
SK_TWO = "skvalue456"
VALUE = "valueabcde"
VALUE_TWO = "valuefghij"

ERRORS = [
    (
        ProvisionedThroughputExceededError("something went wrong"),
        "error returned from dynamodb ProvisionedThroughputExceededException: something went wrong",
    ),
    (
        InternalServerError("something went wrong"),
        "error returned from dynamodb InternalServerError: something went wrong",
    ),
    (RuntimeError("something went wrong"), "error returned from dynamodb something went wrong"),
]


class FakeDynamo:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def _respond(self, operation, request):
        self.calls.append((operation, request))
        if self.error is not None:
            raise self.error
        return self.result

    def get_item(self, **request):
        return self._respond("get_item", request)

    def batch_get_item(self, **request):
        return self._respond("batch_get_item", request)

    def query(self, **request):
        return self._respond("query", request)

    def put_item(self, **request):
        return self._respond("put_item", request)

    def update_item(self, **request):
        return self._respond("update_item", request)


@dataclass
class Sample:
    Foo: str


GET_REQUEST = {"TableName": TABLE, "Key": {"PK": {"S": PK}, "SK": {"S": SK}}}
BATCH_REQUEST = {
    "RequestItems": {
        TABLE: {
            "Keys": [
                {"PK": {"S": PK}, "SK": {"S": SK}},
                {"PK": {"S": PK}, "SK": {"S": SK_TWO}},
            ]
        }
    }
}


def query_expression():
    return (
        ExpressionBuilder()
        .with_key_condition("foo", 5)
        .with_projection(Name("foo"), Name("bar"), Name("baz"))
        .build()
    )


def update_expression():
    return (
        ExpressionBuilder()
        .with_key_condition("foo", 5)
        .with_projection("foo", "bar", "baz")
        .with_update(UpdateBuilder().set("foo", Value(VALUE)))
        .build()
    )


# get


def test_get_returns_record():
    fake = FakeDynamo(result={"Item": {"foo": {"S": VALUE}}})
    assert Store(fake).get(TABLE, PK, SK) == {"foo": VALUE}
    assert fake.calls == [("get_item", GET_REQUEST)]


def test_get_nil_result_raises():
    with pytest.raises(StoreError) as excinfo:
        Store(FakeDynamo(result=None)).get(TABLE, PK, SK)
    assert str(excinfo.value) == "nil results returned"


def test_get_missing_item_raises_not_found():
    with pytest.raises(NotFoundError) as excinfo:
        Store(FakeDynamo(result={})).get(TABLE, PK, SK)
    assert str(excinfo.value) == "record not found"


@pytest.mark.parametrize("error,message", ERRORS)
def test_get_client_error(error, message):
    fake = FakeDynamo(error=error)
    with pytest.raises(StoreError) as excinfo:
        Store(fake).get(TABLE, PK, SK)
    assert str(excinfo.value) == message
    assert excinfo.value.__cause__ is error


# batch_get


def test_batch_get_returns_records():
    fake = FakeDynamo(result={"Responses": {TABLE: [
        {"foo": {"S": VALUE}},
        {"foo": {"S": VALUE_TWO}},
    ]}})
    assert Store(fake).batch_get(TABLE, PK, [SK, SK_TWO]) == [{"foo": VALUE}, {"foo": VALUE_TWO}]
    assert fake.calls == [("batch_get_item", BATCH_REQUEST)]


def test_batch_get_nil_result_raises():
    with pytest.raises(StoreError) as excinfo:
        Store(FakeDynamo(result=None)).batch_get(TABLE, PK, [SK, SK_TWO])
    assert str(excinfo.value) == "nil results returned"


@pytest.mark.parametrize("error,message", ERRORS)
def test_batch_get_client_error(error, message):
    with pytest.raises(StoreError) as excinfo:
        Store(FakeDynamo(error=error)).batch_get(TABLE, PK, [SK, SK_TWO])
    assert str(excinfo.value) == message


# query


def test_query_returns_records():
    ex = query_expression()
    fake = FakeDynamo(result={"Items": [{"foo": {"S": VALUE}}]})
    assert Store(fake).query(TABLE, ex) == [{"foo": VALUE}]
    assert fake.calls == [("query", {
        "KeyConditionExpression": ex.key_condition,
        "ProjectionExpression": ex.projection,
        "ExpressionAttributeNames": ex.names,
        "ExpressionAttributeValues": ex.values,
        "TableName": TABLE,
    })]


def test_query_nil_result_raises():
    with pytest.raises(StoreError) as excinfo:
        Store(FakeDynamo(result=None)).query(TABLE, query_expression())
    assert str(excinfo.value) == "nil results returned"


def test_query_without_items_returns_empty_list():
    assert Store(FakeDynamo(result={})).query(TABLE, query_expression()) == []


@pytest.mark.parametrize("error,message", ERRORS)
def test_query_client_error(error, message):
    with pytest.raises(StoreError) as excinfo:
        Store(FakeDynamo(error=error)).query(TABLE, query_expression())
    assert str(excinfo.value) == message


# put


def test_put_sends_marshalled_item():
    fake = FakeDynamo(result=None)
    Store(fake).put(TABLE, Sample(Foo=VALUE))
    assert fake.calls == [("put_item", {"TableName": TABLE, "Item": {"Foo": {"S": VALUE}}})]


@pytest.mark.parametrize("error,message", ERRORS)
def test_put_client_error(error, message):
    with pytest.raises(StoreError) as excinfo:
        Store(FakeDynamo(error=error)).put(TABLE, Sample(Foo=VALUE))
    assert str(excinfo.value) == message


def test_put_unmarshallable_body_raises():
    fake = FakeDynamo()
    with pytest.raises(StoreError) as excinfo:
        Store(fake).put(TABLE, object())
    assert str(excinfo.value).startswith("failed to marshal Record, ")
    assert fake.calls == []


def test_put_record_uses_key_attributes():
    fake = FakeDynamo()
    Store(fake).put("user", Note(pk="USER#u", sk="NOTE#e", id="i", entity_id="e", user_id="u", value="v"))
    item = fake.calls[0][1]["Item"]
    assert item["PK"] == {"S": "USER#u"}
    assert item["SK"] == {"S": "NOTE#e"}
    assert item["entityID"] == {"S": "e"}


# update


def test_update_returns_attributes():
    ex = update_expression()
    fake = FakeDynamo(result={"Attributes": {"foo": {"S": VALUE}}})
    assert Store(fake).update(TABLE, PK, SK, ex) == {"foo": VALUE}
    assert fake.calls == [("update_item", {
        "Key": {"PK": {"S": PK}, "SK": {"S": SK}},
        "TableName": TABLE,
        "ExpressionAttributeNames": ex.names,
        "ExpressionAttributeValues": ex.values,
        "ReturnValues": "UPDATED_NEW",
        "UpdateExpression": ex.update,
    })]


def test_update_nil_result_raises():
    with pytest.raises(StoreError) as excinfo:
        Store(FakeDynamo(result=None)).update(TABLE, PK, SK, update_expression())
    assert str(excinfo.value) == "nil results returned"


@pytest.mark.parametrize("error,message", ERRORS)
def test_update_client_error(error, message):
    with pytest.raises(StoreError) as excinfo:
        Store(FakeDynamo(error=error)).update(TABLE, PK, SK, update_expression())
    assert str(excinfo.value) == message


# expressions


def test_update_expression_assigns_placeholders():
    ex = (
        ExpressionBuilder()
        .with_update(UpdateBuilder().set("id", Name("id").if_not_exists("x")).set("value", Value("v")))
        .build()
    )
    assert ex.names == {"#0": "id", "#1": "value"}
    assert ex.values == {":0": {"S": "x"}, ":1": {"S": "v"}}
    assert ex.update == "SET #0 = if_not_exists(#0, :0), #1 = :1"


def test_identical_builders_give_equal_expressions():
    when = datetime(2021, 1, 1, tzinfo=timezone.utc)

    def build():
        update = UpdateBuilder().set("dateCreated", Name("dateCreated").if_not_exists(when))
        return ExpressionBuilder().with_update(update).build()

    first = build()
    second = build()
    assert first.update == "SET #0 = if_not_exists(#0, :0)"
    assert first.names == {"#0": "dateCreated"}
    assert first.values == {":0": marshal_value(when)}
    assert first == second


def test_key_condition_and_projection_share_name_aliases():
    ex = query_expression()
    assert ex.key_condition == "#0 = :0"
    assert ex.projection == "#0, #1, #2"
    assert ex.names == {"#0": "foo", "#1": "bar", "#2": "baz"}
    assert ex.values == {":0": {"N": "5"}}


def test_empty_builder_raises():
    with pytest.raises(ValueError):
        ExpressionBuilder().build()


def test_empty_update_raises():
    with pytest.raises(ValueError):
        ExpressionBuilder().with_update(UpdateBuilder()).build()


# marshalling


@pytest.mark.parametrize(
    "value",
    ["text", 5, Decimal("1.5"), True, None, b"raw", [1, "a"], {"a": {"b": 2}}, {"x", "y"}],
)
def test_value_round_trip(value):
    assert unmarshal_value(marshal_value(value)) == value


def test_marshal_value_types():
    assert marshal_value("a") == {"S": "a"}
    assert marshal_value(5) == {"N": "5"}
    assert marshal_value(True) == {"BOOL": True}
    assert marshal_value(None) == {"NULL": True}


def test_marshal_unsupported_value_raises():
    with pytest.raises(TypeError):
        marshal_value(object())


def test_unmarshal_invalid_value_raises():
    with pytest.raises(ValueError):
        unmarshal_value({"Q": "x"})
    with pytest.raises(ValueError):
        unmarshal_value({"N": "not a number"})


def test_map_round_trip():
    data = {"a": "b", "n": 3, "l": [True, None]}
    assert unmarshal_map(marshal_map(data)) == data


def test_marshal_map_rejects_scalars():
    with pytest.raises(TypeError):
        marshal_map(5)


def test_get_bad_item_raises_unmarshal_error():
    with pytest.raises(StoreError) as excinfo:
        Store(FakeDynamo(result={"Item": {"foo": {"Q": "x"}}})).get(TABLE, PK, SK)
    assert str(excinfo.value).startswith("error unmarshalling dynamodb data, ")