# spkit

A small library for talking to SharePoint over HTTP:

- `spkit.client.SPClient` sends requests, applies an authentication
  strategy, adds the default SharePoint REST headers, fetches and caches the
  `X-RequestDigest` form digest for write requests, and retries failed
  requests according to per-status retry policies.
- `spkit.request.SPRequest` is the request object the client sends.
- `spkit.hooks.HookHandlers` lets you observe requests, responses, retries
  and errors.
- `spkit.csom.Builder` composes CSOM XML request packages from object path
  and action nodes built with `spkit.csom_nodes`.
- `spkit.templates` renders the SOAP envelopes used by SAML, ADFS and
  forms-based authentication flows.

## Installation

```
pip install spkit
```

## Sending requests

Subclass `spkit.client.AuthConfig` for your authentication strategy. It
declares `site_url()`, `strategy()`, `set_auth(request, client)`,
`get_auth()`, `parse_config(data)` and `read_config(path)`.

```python
from spkit.client import SPClient, RequestError
from spkit.hooks import HookHandlers
from spkit.request import SPRequest

client = SPClient(
    auth=my_auth,
    retry_policies={503: 3},
    hooks=HookHandlers(on_error=lambda event: print(event.status_code, event.error)),
    timeout=30,
)

request = SPRequest("GET", my_auth.site_url() + "/_api/web?$select=Title")
try:
    response = client.execute(request)  # a requests.Response
except RequestError as exc:
    print("request failed:", exc.status_code, exc)
```

What `execute` does:

- If `config_path` is set and the auth config has no site URL yet, it calls
  `read_config(config_path)`. With still no site URL it raises
  `RequestError` (status 400); if `set_auth` raises, it raises
  `RequestError` (status 401).
- For `POST`, `PATCH` and `MERGE` requests without an `X-RequestDigest`
  header (and not aimed at `/_api/ContextInfo`) it obtains a digest with
  `spkit.digest.get_digest`. Digests are cached per site and auth config;
  `spkit.digest.clear_digest_cache()` empties the cache, and an empty
  digest raises `spkit.digest.DigestError` (reported as `RequestError`
  with status 400).
- It fills in `Accept`, `Content-Type`, `X-ClientService-ClientTag` and
  `User-Agent` when they are missing.
- Any response outside 2xx that is not retried raises `RequestError`
  carrying the status code and the response; the message is
  `"<status> <reason> :: <body>"`.
- A request whose `cancel` event (a `threading.Event`) is set is not sent
  and raises `RequestError("context canceled")`; a retry wait is cut short
  when the event is set.

## Retries

`spkit.retry.DEFAULT_RETRY_POLICIES` is 401 → 5, 429 → 5, 500 → 1,
503 → 10, 504 → 5. Entries in `retry_policies` override the defaults for
their status codes. Between attempts the client waits `0.1 * 2**n`
seconds, or the `Retry-After` header's seconds on a 429. The attempt count
travels in the `X-Spkit-Retry` request header. A request with the header
`X-Spkit-NoRetry: true` is never retried, and `X-Spkit-NoHooks: true`
silences the hooks for that request.

## Building CSOM packages

```python
from spkit.csom import Builder, CompileError
from spkit.csom_nodes import new_object_property, new_query_with_props

builder = Builder()
builder.add_object(new_object_property("Web"))
builder.add_action(new_query_with_props([]))
xml = builder.compile()
```

Objects default to the last added object as their parent, and actions to
the last added object as their target. `object_id(obj)` compiles and
returns the ID assigned to `obj`. `compile()` raises
`spkit.csom.CompileError` when a node template refers to an unknown field;
its `package` attribute holds the text built so far.

## Authentication envelopes

`spkit.templates` provides `online_saml_wsfed`, `online_saml_wsfed_adfs`,
`adfs_saml_wsfed`, `adfs_saml_token` and `fba_ws`, which return compact
XML strings, plus the helpers `escape_param` and `compact_template`.

## What this package does not do

It ships no ready-made authentication strategies: you supply an
`AuthConfig` implementation. It has no command-line tool and no
higher-level API for lists, items, files or other SharePoint objects.

## Running the tests

```
pip install -e .[test]
pytest
```