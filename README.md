# taskapi

A small RESTful task management API. It keeps tasks in thread-safe in-memory
storage and comes with a stress-testing tool. It needs only the Python
standard library.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Running the server

```
taskapi [--host HOST] [--port PORT]
```

By default the server binds to all addresses on port 8080. It serves these
routes:

| Method | Path          | Description                                      |
|--------|---------------|--------------------------------------------------|
| GET    | `/tasks`      | List tasks, 100 per page (`?page=N`, default 1)  |
| GET    | `/tasks/{id}` | Get one task                                     |
| POST   | `/tasks`      | Create a task (`201`)                            |
| PUT    | `/tasks/{id}` | Replace a task's name and status                 |
| DELETE | `/tasks/{id}` | Delete one task                                  |
| DELETE | `/tasks`      | Delete every task                                |
| GET    | `/health`     | Health check, returns `{"status":"ok"}`          |

Any other path or method gets `404` with a plain-text body.

A task looks like this:

```json
{"id": "2f1c0d1e-0000-4000-8000-000000000000", "name": "Learn something", "status": 0}
```

`POST` and `PUT` need a JSON object body with both of these fields:

- `name`: a string that is not blank;
- `status`: a number from 0 to 1.

An invalid body gets `400 {"error": "..."}`, for example
`"name is required"` or `"status must be 0 or 1"`. An unknown id gets `404`.
A page number that is missing, not an integer, or less than 1 counts as
page 1.

A list reply carries the page data and the pagination details:

```json
{"data": [...], "pagination": {"page": 1, "limit": 100, "total": 150,
 "pages": 2, "has_next": true, "has_prev": false}}
```

Requests whose `Origin` is in `taskapi.server.ALLOWED_ORIGINS` get CORS
headers. The server answers every `OPTIONS` request with `204`.
`taskapi.server.cors_headers(origin)` returns the headers for a given
origin.

To embed the server, build it with
`taskapi.server.create_server(handler, address)`. It returns a
`ThreadingHTTPServer`.

## Using it as a library

```python
from taskapi.model import Task
from taskapi.storage import MemoryStorage, PaginationParams
from taskapi.handlers import TaskHandler

store = MemoryStorage()
task = Task(name="Write report", status=0)
store.create(task)             # assigns task.id
page = store.list(PaginationParams.for_page(1))
print(page.to_dict())

handler = TaskHandler(store)
response = handler.create_task('{"name": "Review", "status": 1}')
print(response.status, response.body())
```

- `taskapi.storage.Storage` is the abstract interface.
- `MemoryStorage` implements it. Tasks stay in insertion order until the
  first deletion, which moves the last task into the freed slot.
- A lookup, update or delete of an unknown id raises `TaskNotFoundError`.
- `taskapi.validator.validate_task_request(body)` turns a JSON body into a
  `Task`. An invalid body raises `ValidationError`.
- `taskapi.mock_storage.MockStorage` is a storage double. You give it one
  callable per operation.

## Stress testing

```
taskapi-stress [--base-url URL] [--storage-workers N] [--http-concurrency N]
               [--initial-tasks N] [--mixed-readers N] [--mixed-writers N]
               [--mixed-listers N] [--mixed-initial-tasks N]
               [--long-running] [--long-workers N] [--long-duration SECONDS]
```

This runs the following tests in turn:

1. A storage stress test: many concurrent gets, creates and lists.
2. An HTTP stress test against the running server. The default server is
   `http://localhost:8080`.
3. A progressive HTTP test. It raises the concurrency until fewer than 95%
   of requests succeed.
4. A mixed read/write storage test.
5. Only with `--long-running`: a long-running create test.

The HTTP stages are skipped if the server does not answer on `/health`.
The module `taskapi.monitor` gives the CPU, connection and memory readings
printed during the progressive test. It calls `ps` and `netstat`.

## What it does not do

All tasks live in process memory. Nothing is written to disk, and every
task is lost when the server stops. There is no authentication, and there
is no way to change the page size of 100.