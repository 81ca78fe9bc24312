# mindhub

A storage layer for per-user records kept in a single DynamoDB-style table.
Every record lives under a user partition key (`USER#<id>`) and is told apart
by its sort key (`NOTE#<id>`, `PROGRESS#<id>` or `TIMEMAP`).

The package has no runtime dependencies. It reaches the database through a
small client protocol, `mindhub.dynamo.DynamoDBer`: any object with
`get_item`, `batch_get_item`, `query`, `put_item` and `update_item` methods
that take keyword requests (`TableName=...`, `Key=...`, `Item=...` and so on,
with typed attribute values such as `{"S": "text"}`) and return dict
responses, or `None`. An in-memory fake works as well as a real client.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `mindhub.keys`: `user_pk(id)`, `progress_sk(id)`, `note_sk(id)` and
  `timemap_sk()` build the partition and sort keys.
- `mindhub.models`: the record dataclasses `Note`, `Progress`, `Timemap`,
  `StepNote` and `CourseProgress`, all built on `BaseEntity` (which carries
  `pk` and `sk`). `to_item()` gives a record's stored attributes and
  `from_item(item)` builds a record back, reading times from ISO 8601 strings.
  `Status` holds `STARTED` and `COMPLETED`; `generate_id()` returns a new
  27-character, time-sortable base62 identifier.
- `mindhub.dynamo`:
  - `Store(db)` wraps a `DynamoDBer` and offers `get`, `batch_get`, `query`,
    `put` and `update`, returning plain dicts of Python values.
  - `marshal_value`, `unmarshal_value`, `marshal_map` and `unmarshal_map`
    convert between Python values and typed attribute values. Datetimes are
    stored as ISO 8601 strings.
  - `Name`, `Value`, `UpdateBuilder` and `ExpressionBuilder` build `SET`
    update expressions, including `if_not_exists`, as well as key conditions
    and projections. `build()` fills in the `#n` and `:n` placeholders and
    returns an `Expression`.
  - Errors: any exception the client raises comes back as `StoreError`, and
    so does a `None` response. `get` raises `NotFoundError`, a subclass of
    `StoreError`, when there is no item. A client can raise
    `ProvisionedThroughputExceededError` or `InternalServerError` so that the
    failure is logged under its own message.
  - `USER_TABLE_DEFINITION` describes the `user` table (string `PK` hash key,
    string `SK` range key) as a create-table request.
- `mindhub.note_store.NoteStore`, `mindhub.progress_store.ProgressStore`,
  `mindhub.timemap_store.TimemapStore`: one repository per record kind,
  built on any `Storer` such as `Store`.
- `mindhub.builders`: `NoteBuilder`, `ProgressBuilder` and `TimemapBuilder`
  make test records filled with random values. Every `with_...` call returns
  a new builder. `random_characters(n)` returns random letters and digits.
- `mindhub.gqlclient`: `Client(app, *options)` posts GraphQL queries straight
  to a WSGI application inside the process, with no network involved.

## Records

```python
from mindhub.dynamo import Store
from mindhub.models import Note
from mindhub.note_store import NoteStore

store = Store(my_dynamodb_client)
notes = NoteStore(store)

created = notes.create(Note(entity_id="step-1", user_id="user-1", value="Hello"))
found = notes.get("step-1", "user-1")   # None when there is no such note
notes.update(Note(entity_id="step-1", user_id="user-1", value="Changed"))
```

`create` sets a fresh id and the created and updated times before it writes.
`update` sets the value and the updated time, and creates the id, entity id
and created time only when they are missing. Both return the record without
its `pk` and `sk`.

Progress works the same way:

```python
from mindhub.progress_store import ProgressStore

progress = ProgressStore(store)
progress.start("course-1", "user-1")
progress.complete("course-1", "user-1")
done = progress.get_completed_by_ids("user-1", "course-1", "course-2")
```

`get_completed_by_ids` returns only the records whose state is `COMPLETED`.
`TimemapStore` keeps a single timemap per user, with `get(user_id)`,
`create(timemap)` and `update(timemap)`.

Every store takes `id_generator` and `timer` arguments, so tests can fix the
identifiers and timestamps it writes. By default these are `generate_id` and
the current UTC time.

## GraphQL test client

```python
from mindhub.gqlclient import Client, add_header, var

client = Client(app, add_header("Authorization", "Bearer token"))
data = client.post("query($id: ID!) { user(id: $id) { name } }", var("id", 1))
```

Options given to `Client` apply to every request, and options given to a call
apply to that request alone. The options are `var`, `operation`, `path`,
`add_header`, `basic_auth` and `add_cookie`. `post` returns the response's
`data`. It raises `RawJSONError` when the server returns `errors`, keeping any
partial data on the exception's `data` attribute. An HTTP status of 400 or
above, or a body that is not valid JSON, raises `RuntimeError`. `raw_post`
returns the whole `Response`, with `data`, `errors` and `extensions`.

## What is not included

- No database client comes with the package. You supply one that fits the
  `DynamoDBer` protocol. The package does not create tables: it only
  describes the `user` table in `USER_TABLE_DEFINITION`.
- There is no GraphQL server or API here. The client only posts JSON requests
  to a WSGI application that you provide, and it has no websocket
  subscriptions.