# sschool

A small HTTP API server for running a school: courses, their modules and
lessons, assignments, enrollments, submissions with their members, comments
and an activity feed. Records are kept in a SQLite database.

Every record gets a prefixed identifier, for example `co_…` for a course,
`mo_…` for a module, `ls_…` for a lesson, `as_…` for an assignment, `er_…`
for an enrollment, `su_…` for a submission and `cm_…` for a comment.
Submission members have no identifier of their own; they are addressed by
submission and enrollment.

## Running

Set the database location and start the server:

```
DB_URL=sschool.db sschool
```

On start-up every missing table is created, then the server listens on the
configured host and port (by default `0.0.0.0:3000`). The command takes no
options other than `--help`; all settings come from the environment.

`DB_URL` may be a file path, `sqlite:///relative.db`,
`sqlite:////absolute/path.db` or `:memory:` (an in-memory database that lives
as long as the server). Any other URL scheme is refused.

## Configuration

| Variable               | Default                            | Used for                         |
|------------------------|------------------------------------|----------------------------------|
| `DB_URL`               | required                           | database location                |
| `DB_MAX_THREAD_POOL`   | `10`                               | size of the connection pool      |
| `HOST`                 | `0.0.0.0`                          | listening address                |
| `PORT`                 | `3000`                             | listening port (0–65535)         |
| `LOG_LEVEL`            | `debug`                            | console log level                |
| `OTLP_SERVICE_NAME`    | `rust-app-example`                 | `service_name` metric label      |
| `OTLP_VERSION`         | `0.1.0`                            | `service_version` metric label   |
| `OTLP_SPAN_ENDPOINT`   | `http://localhost:4317`            | read, not used                   |
| `OTLP_METRIC_ENDPOINT` | `http://localhost:4318/v1/metrics` | read, not used                   |

`LOG_LEVEL` accepts `trace`, `debug`, `info`, `warn`, `warning`, `error` and
`off`; in a comma-separated filter such as `info,sschool=debug` only the
entries without `=` count.

## API

| Path                                               | Methods                  |
|----------------------------------------------------|--------------------------|
| `/courses`, `/modules`, `/lessons`, `/assignments`, `/enrollments`, `/submissions` | `GET` (list), `POST` (create) |
| `/courses/{id}`, `/modules/{id}`, `/lessons/{id}`, `/assignments/{id}`, `/enrollments/{id}`, `/submissions/{id}` | `GET`, `PUT`, `DELETE` |
| `/comments`                                        | `GET` (list), `POST`     |
| `/comments/{id}`                                   | `GET`                    |
| `/activities`                                      | `GET` (list)             |
| `/submissions/{submission_id}/members`             | `GET` (list), `POST`     |
| `/submissions/{submission_id}/members/{enrollment_id}` | `GET`, `PUT`, `DELETE` |

- Lists take `limit` (default 10) and `offset` (default 0) and answer
  `{"meta": {"limit", "offset", "total"}, "content": [...]}`. `total` is the
  number of rows in the whole table, also for the members of one submission.
  A `q` parameter is accepted but does not filter anything.
- `POST` answers `201` with the stored record, `GET` and `PUT` answer `200`,
  `DELETE` answers `204` whether or not the record existed.
- `PUT` takes a full body with every required field, like `POST`; fields
  sent as `null` are left unchanged.
- When a member is added, the submission comes from the body's
  `submission_id`, not from the path.
- Timestamps are sent as ISO 8601 text ending in `Z`.
- A missing record answers `404`, a malformed body or query parameter `400`,
  and a storage failure `500`, each with a plain-text message.

## Operational endpoints

- `GET /` redirects permanently (`308`) to `/health`.
- `GET /health` answers `OK`.
- `GET /metrics` returns the counter `http_requests_total` in the Prometheus
  text format, labelled with service name and version, method, route and
  status. Only API routes are counted.

Cross-origin requests are allowed from any origin for `GET`, `POST`,
`OPTIONS`, `PUT`, `DELETE` and `PATCH`, and responses are gzip-compressed
when the client accepts it.

## What it does not do

- There is no authentication; every endpoint is open.
- Traces and metrics are not exported anywhere: the `OTLP_*` endpoints are
  read but unused, and metrics are only served at `/metrics`.
- Only SQLite is supported as storage.
- Accounts and activities have tables but no endpoints that write them.

## Using it from Python

The application can be assembled in code:

```python
from sschool.api import ApiService
from sschool.app import create_app, init_tracing
from sschool.config import EnvConfig
from sschool.db import get_connection

config = EnvConfig.from_env({"DB_URL": "sschool.db"})
metrics = init_tracing(config)
db = get_connection(config)
app = create_app(metrics, ApiService.create(db))
```

`app` is an ASGI application and can be served by any ASGI server. The
handlers can also be called directly, for instance
`ApiService.create(db).create_course({"name": "Algebra", "slug": "algebra",
"description": "Basics"})`, which returns an `ApiResponse` with `status` and
`body`. The services in `sschool.services` work on records from
`sschool.domain`, and `Database` in `sschool.db` is the connection pool they
share; call `db.close()` when done.